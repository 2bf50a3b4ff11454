'''
Full report: load the case counts, calibrate, project at the calibrated R0,
then write the figures and the narrative to the output folder.

    python report.py --force --refine

'''

import os
import sys
import sciris as sc
import npi_tools as npt

if __name__ == '__main__':

    # Settings
    args = npt.config.process_inputs(sys.argv)

    # Create and run
    mgr = npt.Manager(name='Report')
    mgr.run(force=args.force, refine=args.refine)
    mgr.plots()
    mgr.analyzer.plot_projection(log=True)

    # Narrative
    sc.heading('Summary')
    paras = mgr.analyzer.describe()
    text = '\n\n'.join(paras)
    print(text)
    fn = os.path.join(mgr.dir, 'summary.txt')
    sc.savetext(fn, text)
    print(f'Saved {fn}')
