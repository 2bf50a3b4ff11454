'''
Compare modelled incidence with the observed case counts, and refine R0 for a
single scenario with Optuna.
'''

import numpy as np
import sciris as sc
import optuna

from .errors import ConfigurationError


__all__ = ['score_grid', 'best_fit', 'fit_R0']


def score_grid(results, observed, column='rolling'):
    '''
    Sum of squared errors between each scenario's incidence and the observed
    series, over the dates present in both.

    Args:
        results (dataframe): merged scenario table (date, incidence, label, ...)
        observed (dataframe): observed cases with a date column and column
        column (str): which observed series to fit to; by default the rolling mean

    Returns:
        A dataframe with one row per label, best fit first
    '''
    obs = observed[['date', column]].rename(columns={column:'observed'})
    df = results.merge(obs, on='date', how='inner')
    if not len(df):
        errormsg = f'None of the {results["date"].nunique()} simulated dates have observations'
        raise ConfigurationError(errormsg)

    df['sq_err'] = (df['incidence'] - df['observed'])**2
    tag_cols = [c for c in results.columns if c not in ['date', 'day', 'incidence', 'contact', 'transmission']]
    scores = df.groupby(tag_cols, sort=False).agg(sse=('sq_err', 'sum'), n_obs=('sq_err', 'size')).reset_index()
    scores['rmse'] = np.sqrt(scores['sse']/scores['n_obs'])
    scores = scores.sort_values('sse', kind='stable').reset_index(drop=True)
    return scores


def best_fit(scores):
    ''' The best scoring row, as an objdict '''
    return sc.objdict(scores.iloc[0].to_dict())


def fit_R0(sconf, observed, sim_pars, model_pars, bounds=(2, 10), n_trials=40, seed=0, column='rolling', verbose=False):
    '''
    Refine R0 for one configuration, keeping its schedules fixed.

    Args:
        sconf (Config): finalized configuration whose schedules are used
        observed (dataframe): observed cases, as for score_grid
        sim_pars (dict): simulation parameters (population, start day, seeding)
        model_pars (dict): contact matrix, age distribution, rates
        bounds (tuple): range of R0 values to search
        n_trials (int): number of Optuna trials
        seed (int): seed for the TPE sampler, so the fit is reproducible

    Returns:
        objdict with the best R0, its SSE, and the study
    '''
    from . import manager as mgr # Circular at module level

    def objective(trial):
        R0 = trial.suggest_float('R0', bounds[0], bounds[1])
        conf = sc.dcp(sconf)
        conf.R0 = R0
        conf.label = f'{sconf.label} (R0={R0:.3f})'
        conf.finalize()
        df = mgr.run_config(conf, sim_pars, model_pars, verbose=0)
        return float(score_grid(df, observed, column=column)['sse'].iloc[0])

    if not verbose:
        optuna.logging.set_verbosity(optuna.logging.WARNING)
    study = optuna.create_study(direction='minimize', sampler=optuna.samplers.TPESampler(seed=seed))
    study.optimize(objective, n_trials=n_trials)

    output = sc.objdict()
    output.R0 = study.best_params['R0']
    output.sse = study.best_value
    output.study = study
    return output
