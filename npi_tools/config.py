'''
Set global configurations for the runs
'''

import os
import argparse
import numpy as np
import sciris as sc

# Default settings reproduce the report's calibration and projection runs

def get_defaults():

    sim_pars = sc.objdict(
        pop_size   = 5_000_000,
        start_day  = '2021-06-16', # First day of sim (day 1)
        n_days     = 123, # Projection horizon
        n_exposed  = 1, # Size of the single seeded exposed cohort
        seed_band  = 1, # Age band the seed cohort is placed in
    )

    model_pars = sc.objdict(
        sigma     = 1/4, # E-->I, i.e. 4-day incubation period
        gamma     = 1/5, # I-->R, i.e. 5-day infectious period
        age_bands = ['0-19', '20-39', '40-59', '60+'],
        age_dist  = np.array([0.24, 0.29, 0.25, 0.22]),
        contacts  = np.array([ # Daily contacts of a person in the row band with the column band
            [7.0, 3.0, 2.5, 0.8],
            [2.4, 6.0, 3.2, 0.9],
            [2.0, 3.3, 4.5, 1.2],
            [0.9, 1.3, 1.8, 2.5],
        ]),
    )

    # Calendar of the interventions
    dates = sc.objdict(
        lockdown = '2021-06-26',
        masks    = '2021-06-23',
        tighten  = '2021-07-17',
        lift     = '2021-08-28',
    )

    # Multipliers for each stage of the interventions
    levels = sc.objdict(
        initial   = 0.7, # First week of lockdown
        sustained = 0.5,
        tightened = 0.35,
        masks     = 0.8, # Transmission multiplier under a mask mandate
    )

    sweep_pars = sc.objdict(
        calib_R0    = [4.0, 6.0, 8.0],
        suppression = [0.25, 0.5, 0.75, 0.9], # Fractional contact reduction after lockdown
        calib_days  = 46, # Calibration window, days from start_day
        proj_R0     = 6.0, # Used for projections unless a calibrated value is supplied
        scen_keys   = None, # Subset of projection scenarios to run; None for all
    )

    run_pars = sc.objdict(
        n_cpus     = None, # Manually set the number of CPUs -- otherwise calculated automatically
        cpu_thresh = 0.95, # Don't use more than this amount of available CPUs, if number of CPUs is not set
        parallel   = False, # Runs are fast, so serial by default
        verbose    = 1,
        n_trials   = 40, # Optuna trials when refining R0
        seed       = 0, # Seed for the Optuna sampler
    )

    paths = sc.objdict(
        data    = sc.thisdir(None, os.pardir, 'inputs', 'cases.csv'), # Daily case counts
        outputs = 'results', # Folder for figures, cached results, etc.
    )
    return sim_pars, model_pars, dates, levels, sweep_pars, run_pars, paths


# Populate the global namespace
sim_pars, model_pars, dates, levels, sweep_pars, run_pars, paths = get_defaults()


def process_inputs(argv, **kwargs): # pragma: no cover
    ''' Handle command-line input arguments -- used for most of the scripts. '''

    parser = argparse.ArgumentParser()
    parser.add_argument('--force', action='store_true', help='Rerun the simulations even if cached results exist')
    parser.add_argument('--refine', action='store_true', help='Refine the calibrated R0 with Optuna')
    parser.add_argument('--parallel', action='store_true', help='Run the scenario grid in parallel')
    parser.add_argument('--n_cpus', type=int, default=0, help='Number of CPUs to use when running in parallel')
    parser.add_argument('--n_days', type=int, default=0, help='Set the projection horizon in days')
    parser.add_argument('--R0', type=float, default=0, help='Set the R0 used for projections (by default, the calibrated value)')
    parser.add_argument('--data', type=str, default='', help='Path to the daily case count file')
    parser.add_argument('--outputs', type=str, default='', help='Folder for figures and cached results')
    args = parser.parse_args(argv[1:])

    # Handle any kwargs to override command-line options
    for k,v in kwargs.items():
        if v is not None:
            setattr(args, k, v)

    if args.parallel:
        run_pars.parallel = True
    if args.n_cpus:
        run_pars.n_cpus = args.n_cpus
    if args.n_days:
        sim_pars.n_days = args.n_days
    if args.R0:
        sweep_pars.proj_R0 = args.R0
    if args.data:
        paths.data = args.data
    if args.outputs:
        paths.outputs = args.outputs

    return args


def print_pars(label):
    ''' Helper function to print the name '''
    print(f'Parameters for a {label} run: n_days={sim_pars.n_days}, R0={sweep_pars.calib_R0}, suppression={sweep_pars.suppression}')
    return


def set_default():
    ''' Reset every group to its default values, in place '''
    for current, default in zip([sim_pars, model_pars, dates, levels, sweep_pars, run_pars, paths], get_defaults()):
        current.clear()
        current.update(default)
    print_pars('default')
    return
