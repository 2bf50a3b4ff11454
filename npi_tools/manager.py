'''
Build and run the scenario grid
'''

import os
import psutil

import pandas as pd
import sciris as sc

import seir_model as sm

from . import schedules as scn
from . import analysis as an
from . import calibration as cal
from . import config as cfg
from . import data as dat
from .errors import ConfigurationError, SimulationFailure


__all__ = ['ScenarioParams', 'Config', 'Builder', 'Manager', 'run_config', 'run_configs', 'merge_results', 'results_match', 'suppression_levels', 'R0_levels']


class ScenarioParams:
    '''
    Everything that varies between runs: R0, the progression rates, and the
    contact and transmission schedules
    '''

    def __init__(self, R0, sigma, gamma, contact, transmission):
        if not R0 > 0:
            errormsg = f'R0 must be positive, not {R0}'
            raise ConfigurationError(errormsg)
        if not (sigma > 0 and gamma > 0):
            errormsg = f'Progression rates must be positive, not sigma={sigma}, gamma={gamma}'
            raise ConfigurationError(errormsg)
        for which, sched in [('contact', contact), ('transmission', transmission)]:
            if not isinstance(sched, scn.DailySchedule):
                errormsg = f'The {which} schedule must be a DailySchedule, not {type(sched)}'
                raise ConfigurationError(errormsg)
        if len(contact) != len(transmission):
            errormsg = f'Contact ({len(contact)} days) and transmission ({len(transmission)} days) schedules must cover the same horizon'
            raise ConfigurationError(errormsg)

        self.R0 = float(R0)
        self.sigma = sigma
        self.gamma = gamma
        self.contact = contact
        self.transmission = transmission

    @property
    def n_days(self):
        return len(self.contact)

    def to_pars(self, model_pars):
        ''' Parameters in the form the model expects '''
        return dict(
            R0 = self.R0,
            sigma = self.sigma,
            gamma = self.gamma,
            contacts = model_pars['contacts'],
            age_dist = model_pars['age_dist'],
            contact_mult = self.contact.values,
            transmission_mult = self.transmission.values,
        )

    def __repr__(self):
        return f'ScenarioParams(R0={self.R0}, sigma={self.sigma:.3f}, gamma={self.gamma:.3f}, contact={self.contact.label!r}, transmission={self.transmission.label!r})'


class Config:
    def __init__(self, model_pars=None, label=None, tags=None):
        self.label = label
        self.tags = {}
        if tags is not None:
            self.tags.update(tags)

        self.R0 = None
        self.sigma = model_pars['sigma'] if model_pars else None
        self.gamma = model_pars['gamma'] if model_pars else None
        self.contact = None
        self.transmission = None
        self.pars = None # ScenarioParams, set once the configuration is complete
        self.count = 0

    def finalize(self):
        ''' Check the configuration is complete and build its ScenarioParams '''
        if self.R0 is None or self.contact is None or self.transmission is None:
            errormsg = f'Configuration "{self.label}" is incomplete: R0={self.R0}, contact={self.contact}, transmission={self.transmission}'
            raise ConfigurationError(errormsg)
        if self.label is None:
            self.label = ', '.join(str(v) for v in self.tags.values())
        self.pars = ScenarioParams(self.R0, self.sigma, self.gamma, self.contact, self.transmission)
        return self

    def __repr__(self):
        return f'''
{'-'*80}
Configuration {self.label}:
 * Tags: {self.tags}
 * Pars: {self.pars}
 '''


class Builder:
    '''
    Build the run configurations. Each level multiplies the existing
    configurations by its values (a cross product), unless added as paired, in
    which case its values are matched one to one with the existing configurations.
    '''

    def __init__(self, model_pars):
        self.configs = [Config(model_pars=model_pars)]

    @staticmethod
    def R0_func(config, key, R0):
        config.R0 = R0
        return config

    @staticmethod
    def scen_func(config, key, schedules):
        ''' Set the contact and transmission schedules from a (contact, transmission) pair '''
        config.contact, config.transmission = schedules
        return config

    @staticmethod
    def contact_func(config, key, schedule):
        config.contact = schedule
        return config

    @staticmethod
    def transmission_func(config, key, schedule):
        config.transmission = schedule
        return config

    @staticmethod
    def rates_func(config, key, rates): # Generic to the progression rates
        for k,v in rates.items():
            setattr(config, k, v)
        return config

    def set(self, **kwargs):
        ''' Set attributes on every configuration without adding a sweep dimension '''
        for config in self.configs:
            for k,v in kwargs.items():
                setattr(config, k, v)
        return

    def add_level(self, keyname, level, func, paired=False):

        # Map a function name to method
        if isinstance(func, str):
            try:
                func = dict(
                    R0_func = self.R0_func,
                    scen_func = self.scen_func,
                    contact_func = self.contact_func,
                    transmission_func = self.transmission_func,
                    rates_func = self.rates_func,
                    )[func]
            except Exception as E:
                errormsg = f'Could not recognize function "{func}": {str(E)}'
                raise ValueError(errormsg)

        if len(level) == 0:
            errormsg = f'Level "{keyname}" has no values'
            raise ConfigurationError(errormsg)

        new_configs = []
        if paired:
            if len(level) != len(self.configs):
                errormsg = f'Paired level "{keyname}" has {len(level)} values but there are {len(self.configs)} configurations'
                raise ConfigurationError(errormsg)
            for config, (k,v) in zip(self.configs, level.items()):
                cfg = func(sc.dcp(config), k, v)
                cfg.tags[keyname] = k
                new_configs += [cfg]
        else:
            for config in self.configs:
                for k,v in level.items():
                    cfg = func(sc.dcp(config), k, v)
                    cfg.tags[keyname] = k
                    new_configs += [cfg]
        self.configs = new_configs

    def __repr__(self):
        ret = ''
        for config in self.configs:
            ret += str(config)
        return ret

    def get(self):
        ''' Finalize and return the configurations; fails before anything is run if any is invalid '''
        for i, config in enumerate(self.configs):
            config.count = i
            config.finalize()

        labels = [config.label for config in self.configs]
        dups = sorted(set(l for l in labels if labels.count(l) > 1))
        if dups:
            errormsg = f'Scenario labels must be unique, but these are repeated: {dups}'
            raise ConfigurationError(errormsg)

        horizons = set(config.pars.n_days for config in self.configs)
        if len(horizons) > 1:
            errormsg = f'All scenarios must share the same horizon, not {sorted(horizons)}'
            raise ConfigurationError(errormsg)

        return self.configs


def _fmt_level(value, decimals):
    ''' Short label for a level value, falling back to full precision when rounding would lose it '''
    short = f'{value:.{decimals}f}'
    return short if float(short) == value else f'{value:g}'


def _add_unique(level, key, value, keyname):
    if key in level:
        errormsg = f'{keyname} values {level[key]} and {value} both give the label "{key}"; every value must be distinct'
        raise ConfigurationError(errormsg)
    level[key] = value
    return


def R0_levels(values):
    ''' Label each R0 value for use with Builder.add_level '''
    level = sc.odict()
    for R0 in sc.promotetolist(values):
        _add_unique(level, f'R0={_fmt_level(R0, 1)}', R0, 'R0')
    return level


def suppression_levels(n_days, trigger, reductions):
    ''' Contact schedules that cut contacts by each fraction from the trigger offset onwards '''
    level = sc.odict()
    for r in sc.promotetolist(reductions):
        key = f'{_fmt_level(100*r, 0)}% reduction'
        _add_unique(level, key, scn.make_schedule(n_days, [(trigger, 1-r)], label=key), 'Suppression')
    return level


#%% Running
def run_config(sconf, sim_pars, model_pars, n_sims=None, verbose=1):
    ''' Run one configuration and return its incidence as a tidy table '''

    if verbose:
        count = f' ({sconf.count+1} of {n_sims})' if n_sims else ''
        print(f'Running "{sconf.label}"{count}...')

    pars = sconf.pars
    n_days = pars.n_days
    try:
        state = sm.initial_state(sim_pars['pop_size'], model_pars['age_dist'], n_exposed=sim_pars['n_exposed'], seed_band=sim_pars['seed_band'])
        days, incidence = sm.simulate(n_days, state, pars.to_pars(model_pars))
    except sm.ModelError as E:
        errormsg = f'Simulation "{sconf.label}" failed: {str(E)}'
        raise SimulationFailure(errormsg) from E

    df = pd.DataFrame({
        'date': pd.date_range(sim_pars['start_day'], periods=n_days),
        'day': days,
        'incidence': incidence,
    })
    df['label'] = sconf.label
    df['R0'] = pars.R0
    df['contact'] = pars.contact.values
    df['transmission'] = pars.transmission.values
    for k,v in sconf.tags.items():
        df[k] = v

    return df


def merge_results(tables, configs):
    '''
    Combine the per-scenario tables in configuration order, checking that every
    scenario is present with exactly one row per simulated day
    '''
    by_label = {}
    for df in tables:
        label = df['label'].iloc[0]
        by_label[label] = df

    n_days = configs[0].pars.n_days
    for config in configs:
        if config.label not in by_label:
            errormsg = f'No results for scenario "{config.label}"'
            raise SimulationFailure(errormsg)
        if len(by_label[config.label]) != n_days:
            errormsg = f'Scenario "{config.label}" has {len(by_label[config.label])} days of results, expected {n_days}'
            raise SimulationFailure(errormsg)

    results = pd.concat([by_label[config.label] for config in configs], ignore_index=True)
    if results.duplicated(['label', 'date']).any():
        raise SimulationFailure('Results contain duplicate (label, date) rows')
    return results


def results_match(results, configs, start_day):
    '''
    Check that a results table holds exactly these configurations: the same
    labels in the same order, each over the same dates with the same R0 and
    schedules. Used to decide whether cached results can be reused.
    '''
    n_days = configs[0].pars.n_days
    if list(results['label'].unique()) != [config.label for config in configs] or len(results) != n_days*len(configs):
        return False
    dates = pd.date_range(start_day, periods=n_days)
    for config, (_, df) in zip(configs, results.groupby('label', sort=False)):
        pars = config.pars
        if len(df) != n_days or not (df['date'].values == dates.values).all():
            return False
        if not ((df['R0'] == pars.R0).all() and (df['contact'].values == pars.contact.values).all()
                and (df['transmission'].values == pars.transmission.values).all()):
            return False
    return True


def run_configs(sim_configs, sim_pars, model_pars, run_cfg, filename=None):
    ''' Run every configuration and merge the results into one table '''

    verbose = run_cfg['verbose']
    if verbose:
        sc.heading('Running sims...')
    TT = sc.tic()
    kwargs = dict(sim_pars=sim_pars, model_pars=model_pars, n_sims=len(sim_configs), verbose=verbose)
    if run_cfg['parallel']: # pragma: no cover
        n_cpus = run_cfg['n_cpus']
        if n_cpus is None:
            n_cpus = max(1, min(len(sim_configs), int(psutil.cpu_count()*run_cfg['cpu_thresh'])))
        if verbose:
            print(f'...running in parallel on {n_cpus} CPUs')
        tables = sc.parallelize(run_config, iterarg=sim_configs, kwargs=kwargs, ncpus=n_cpus)
    else:
        if verbose:
            print('...running in serial')
        tables = []
        for sconf in sim_configs:
            tables.append(run_config(sconf, **kwargs))

    results = merge_results(tables, sim_configs)

    if filename is not None:
        sc.save(filename, results)
        if verbose:
            print(f'Done, saved {filename}')

    if verbose:
        sc.toc(TT)

    return results


class Manager(sc.objdict):
    '''
    Main class for the report: loads the case data, runs the calibration grid
    (every R0 crossed with every suppression level), picks the best fit, and
    runs the projection scenarios at a single R0.
    '''

    def __init__(self, name=None, sim_pars=None, model_pars=None, dates=None, levels=None, sweep_pars=None, run_pars=None, paths=None, cfg=cfg):

        # Handle inputs
        input_pars = sc.objdict()
        input_pars.sim_pars = sim_pars
        input_pars.model_pars = model_pars
        input_pars.dates = dates
        input_pars.levels = levels
        input_pars.sweep_pars = sweep_pars
        input_pars.run_pars = run_pars
        input_pars.paths = paths
        for k,pars in input_pars.items():
            defaults = getattr(cfg, k)
            self[k] = sc.dcp(sc.objdict(sc.mergedicts(defaults, pars))) # Copy the merged objdict

        self.name = self.__class__.__name__ if name is None else name
        self.dir = os.path.join(self.paths.outputs, self.name)

        self.cases = None
        self.observed = None
        self.calib_results = None
        self.scores = None
        self.best = None
        self.refined = None
        self.proj_results = None
        self.analyzer = None
        return


    def cachefn(self, stage):
        return os.path.join(self.dir, f'{stage}_{self.sim_pars.pop_size}.obj')


    @property
    def verbose(self):
        return self.run_pars.verbose


    def load_data(self, filename=None):
        ''' Load the observed case counts '''
        if filename is None:
            filename = self.paths.data
        if self.verbose:
            print(f'Loading case counts from {filename}')
        year = pd.Timestamp(self.sim_pars.start_day).year
        self.cases = dat.load_cases(filename, year=year)
        self.observed = dat.observed_incidence(self.cases, self.sim_pars.start_day, self.sweep_pars.calib_days)
        return self.cases


    def calibration_configs(self):
        ''' Every R0 crossed with every suppression level '''
        if self.verbose:
            sc.heading('Creating calibration configurations...')
        n_days = self.sweep_pars.calib_days
        lockdown = scn.date_offset(self.dates.lockdown, self.sim_pars.start_day)

        builder = Builder(self.model_pars)
        builder.set(transmission=scn.no_intervention(n_days))
        builder.add_level('Transmissibility', R0_levels(self.sweep_pars.calib_R0), builder.R0_func)
        builder.add_level('Suppression', suppression_levels(n_days, lockdown, self.sweep_pars.suppression), builder.contact_func)
        return builder.get()


    def projection_configs(self, R0=None):
        ''' A single R0 with each of the named NPI scenarios '''
        if R0 is None:
            R0 = self.sweep_pars.proj_R0
        if self.verbose:
            sc.heading(f'Creating projection configurations for R0={R0}...')

        all_scen = scn.generate_scenarios(self.sim_pars.start_day, self.sim_pars.n_days, self.dates, self.levels)
        keys = self.sweep_pars.scen_keys
        if keys is not None:
            missing = [k for k in keys if k not in all_scen]
            if missing:
                errormsg = f'Unknown scenarios {missing}; choices are {all_scen.keys()}'
                raise ConfigurationError(errormsg)
            all_scen = sc.odict({k:all_scen[k] for k in keys})

        builder = Builder(self.model_pars)
        builder.add_level('Transmissibility', R0_levels(R0), builder.R0_func)
        builder.add_level('Scenario', all_scen, builder.scen_func)
        return builder.get()


    def _run(self, stage, configs, force):
        fn = self.cachefn(stage)
        os.makedirs(self.dir, exist_ok=True)
        if force or not os.path.isfile(fn):
            return run_configs(configs, self.sim_pars, self.model_pars, self.run_pars, filename=fn)
        results = sc.load(fn)
        if not results_match(results, configs, self.sim_pars.start_day):
            if self.verbose:
                print(f'Cached results in {fn} are for different scenarios, rerunning')
            return run_configs(configs, self.sim_pars, self.model_pars, self.run_pars, filename=fn)
        if self.verbose:
            print(f'Loaded {fn}')
        return results


    def calibrate(self, force=False, refine=False):
        ''' Run the calibration grid and score it against the observed incidence '''
        if self.observed is None:
            self.load_data()
        configs = self.calibration_configs()
        self.calib_results = self._run('calibration', configs, force)
        self.scores = cal.score_grid(self.calib_results, self.observed)
        self.best = cal.best_fit(self.scores)
        if self.verbose:
            print(f'Best fit: {self.best.label} (SSE={self.best.sse:0.1f})')

        if refine:
            best_config = [c for c in configs if c.label == self.best.label][0]
            self.refined = cal.fit_R0(best_config, self.observed, self.sim_pars, self.model_pars,
                                      bounds=(min(self.sweep_pars.calib_R0), max(self.sweep_pars.calib_R0)),
                                      n_trials=self.run_pars.n_trials, seed=self.run_pars.seed)
            if self.verbose:
                print(f'Refined R0 for "{self.best.label}": {self.refined.R0:0.2f} (SSE={self.refined.sse:0.1f})')
        return self.scores


    def calibrated_R0(self):
        ''' The refined R0 if available, else the best grid value, else the configured default '''
        if self.refined is not None:
            return self.refined.R0
        elif self.best is not None:
            return self.best.R0
        return self.sweep_pars.proj_R0


    def project(self, R0=None, force=False):
        ''' Run the projection scenarios '''
        if R0 is None:
            R0 = self.calibrated_R0()
        configs = self.projection_configs(R0=R0)
        self.proj_results = self._run('projection', configs, force)
        return self.proj_results


    def run(self, force=False, refine=False):
        ''' Calibrate, then project at the calibrated R0 '''
        self.calibrate(force=force, refine=refine)
        self.project(force=force)
        return


    def analyze(self, rerun=True):
        ''' Create the analysis '''
        if self.analyzer is None or rerun:
            self.analyzer = an.Analysis(self.proj_results, self.dir, calib_results=self.calib_results, observed=self.cases,
                                        scores=self.scores, dates=self.dates, verbose=self.verbose)
        return self.analyzer


    def plots(self):
        ''' Generate all figures '''
        self.analyze(rerun=False)
        self.analyzer.plot_observed()
        if self.calib_results is not None:
            self.analyzer.plot_calibration()
        self.analyzer.plot_schedules()
        self.analyzer.plot_projection()
        return
