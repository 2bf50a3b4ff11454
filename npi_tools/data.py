'''
Load the observed daily case counts
'''

import os
import pandas as pd
import sciris as sc

from .errors import DataLoadError


__all__ = ['load_cases', 'observed_incidence']


def load_cases(filename, year=None, local_prefix='local', window=7):
    '''
    Read the daily case count file.

    The file needs a "date" column written as day/month (e.g. 16/06), plus one
    column per category of locally acquired cases, each starting with local_prefix.

    Args:
        filename (str): path to the CSV file
        year (int): year the dates fall in; by default, the current year
        local_prefix (str): prefix of the local-source count columns
        window (int): length of the trailing rolling mean, in days

    Returns:
        A dataframe with the date, the category counts, their daily total, and
        the trailing rolling mean of the total
    '''
    if not os.path.isfile(filename):
        errormsg = f'Case count file "{filename}" does not exist'
        raise DataLoadError(errormsg)

    try:
        df = pd.read_csv(filename)
    except Exception as E:
        errormsg = f'Could not read case counts from "{filename}": {str(E)}'
        raise DataLoadError(errormsg) from E

    local_cols = [c for c in df.columns if c.startswith(local_prefix)]
    if 'date' not in df.columns or not local_cols:
        errormsg = f'"{filename}" must have a "date" column and at least one "{local_prefix}*" column, but has {list(df.columns)}'
        raise DataLoadError(errormsg)

    if not len(df):
        errormsg = f'"{filename}" has no rows of case counts'
        raise DataLoadError(errormsg)

    if year is None:
        year = sc.now().year
    try:
        dates = pd.to_datetime(df['date'].astype(str).str.strip() + f'/{year}', format='%d/%m/%Y')
    except ValueError as E:
        errormsg = f'Could not parse the dates in "{filename}" as day/month: {str(E)}'
        raise DataLoadError(errormsg) from E

    counts = df[local_cols].apply(pd.to_numeric, errors='coerce')
    if counts.isna().any().any() or (counts < 0).any().any():
        errormsg = f'Case counts in "{filename}" must be non-negative numbers'
        raise DataLoadError(errormsg)

    cases = counts.copy()
    cases.insert(0, 'date', dates)
    cases = cases.sort_values('date').reset_index(drop=True)
    if cases['date'].duplicated().any():
        errormsg = f'"{filename}" has more than one row for {cases.loc[cases["date"].duplicated(), "date"].dt.date.tolist()}'
        raise DataLoadError(errormsg)

    cases['total'] = cases[local_cols].sum(axis=1)
    cases['rolling'] = cases['total'].rolling(window, min_periods=1).mean()

    return cases


def observed_incidence(cases, start_day, n_days):
    '''
    Align the observations with the simulation calendar: one row per simulated
    day that has data, with the day number counted from start_day
    '''
    start = pd.Timestamp(start_day)
    end = start + pd.Timedelta(days=n_days-1)
    obs = cases.loc[(cases['date'] >= start) & (cases['date'] <= end)].copy()
    obs['day'] = (obs['date'] - start).dt.days + 1
    return obs.reset_index(drop=True)
