'''
Calibration: every R0 crossed with every contact suppression level, scored
against the observed 7-day average.

Example usage, forcing new results and refining the best fit with Optuna:

    python run_calibration.py --force --refine

'''

import sys
import npi_tools as npt

if __name__ == '__main__':

    # Settings
    args = npt.config.process_inputs(sys.argv)

    # Create and run
    mgr = npt.Manager(name='Calibration')
    scores = mgr.calibrate(force=args.force, refine=args.refine)
    print(scores[['label', 'sse', 'rmse']].to_string(index=False))

    # Plots
    analyzer = mgr.analyze()
    analyzer.plot_observed()
    analyzer.plot_calibration()
