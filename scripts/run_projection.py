'''
Projections: a single R0 with each of the named NPI scenarios.

Example usage, projecting at R0=6 without calibrating first:

    python run_projection.py --force --R0=6

'''

import sys
import npi_tools as npt

if __name__ == '__main__':

    # Settings
    args = npt.config.process_inputs(sys.argv)

    # Create and run
    mgr = npt.Manager(name='Projection')
    mgr.load_data()
    mgr.project(R0=mgr.sweep_pars.proj_R0, force=args.force)
    analyzer = mgr.analyze()

    # Plots
    analyzer.plot_schedules()
    analyzer.plot_projection()
    analyzer.plot_projection(log=True)
    print(analyzer.summary.to_string(index=False))
