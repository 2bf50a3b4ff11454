'''
Build daily intervention schedules from calendar dates, and define the named
NPI scenarios used for projections.
'''

import numpy as np
import pandas as pd
import sciris as sc

from .errors import ConfigurationError


__all__ = ['DailySchedule', 'make_schedule', 'staged_schedule', 'no_intervention', 'date_offset', 'generate_scenarios']


class DailySchedule:
    '''
    A sequence of daily multipliers for one intervention, one value per simulated
    day. 1 means no reduction and 0 full suppression. The values are read-only.

    Indexing (schedule[i], len, np.asarray) follows array conventions; use
    schedule.day(k) to look up simulation day k, counting from 1.
    '''

    def __init__(self, values, label=None, breakpoints=None):
        values = np.array(values, dtype=float)
        if values.ndim != 1 or len(values) == 0:
            errormsg = f'A schedule must be a non-empty 1D sequence, not shape {values.shape}'
            raise ConfigurationError(errormsg)
        if np.any(values < 0) or np.any(values > 1):
            errormsg = f'Schedule "{label}" has multipliers outside [0, 1]: {values[(values<0) | (values>1)]}'
            raise ConfigurationError(errormsg)
        values.flags.writeable = False
        self._values = values
        self.label = label
        self.breakpoints = tuple(breakpoints) if breakpoints is not None else ()

    @property
    def values(self):
        return self._values

    @property
    def n_days(self):
        return len(self._values)

    def day(self, k):
        ''' Multiplier on simulation day k (1-based) '''
        if not 1 <= k <= self.n_days:
            raise IndexError(f'Day {k} is outside the schedule (days 1 to {self.n_days})')
        return self._values[k-1]

    def __len__(self):
        return len(self._values)

    def __getitem__(self, ind):
        return self._values[ind]

    def __iter__(self):
        return iter(self._values)

    def __array__(self, dtype=None, copy=None):
        return np.asarray(self._values, dtype=dtype)

    def __reduce__(self): # Copies and unpickled schedules stay read-only
        return (self.__class__, (self._values, self.label, self.breakpoints))

    def __eq__(self, other):
        if not isinstance(other, DailySchedule):
            return NotImplemented
        return np.array_equal(self._values, other._values)

    def __hash__(self):
        return hash(self._values.tobytes())

    def __repr__(self):
        return f'DailySchedule({self.label!r}, n_days={self.n_days}, breakpoints={list(self.breakpoints)})'


def make_schedule(n_days, breakpoints=None, label=None):
    '''
    Build a step-function schedule.

    Args:
        n_days (int): simulation horizon
        breakpoints (list): ordered (offset, level) pairs. An offset of k means the
            level applies from day k+1; days before the first breakpoint hold 1.0,
            and each level holds until the next breakpoint or the end of the horizon.
        label (str): name for the schedule

    Offsets must be non-decreasing. Offsets <= 0 apply from day 1. When two
    breakpoints fall on the same day, the later one wins. A breakpoint at
    offset n_days is applied to the final day.

    **Example**::

        lockdown = make_schedule(46, [(15, 0.5), (45, 1.0)]) # Days 16-45 at half contacts, lifted on day 46
    '''
    if n_days is None or int(n_days) != n_days or n_days < 1:
        errormsg = f'The horizon must be a positive whole number of days, not {n_days}'
        raise ConfigurationError(errormsg)
    n_days = int(n_days)
    breakpoints = [] if breakpoints is None else list(breakpoints)

    prev = None
    for offset, level in breakpoints:
        if not 0 <= level <= 1:
            errormsg = f'Level {level} at offset {offset} is outside [0, 1]'
            raise ConfigurationError(errormsg)
        if prev is not None and offset < prev:
            errormsg = f'Breakpoint offsets must be non-decreasing, but {offset} follows {prev}'
            raise ConfigurationError(errormsg)
        prev = offset

    if breakpoints and breakpoints[-1][0] > n_days:
        errormsg = f'Horizon of {n_days} days is shorter than the last breakpoint offset ({breakpoints[-1][0]})'
        raise ConfigurationError(errormsg)

    values = np.ones(n_days)
    for offset, level in breakpoints:
        start = min(max(int(offset), 0), n_days-1)
        values[start:] = level

    return DailySchedule(values, label=label, breakpoints=breakpoints)


def staged_schedule(n_days, trigger, interim, final, plateau=7, lift=None, label=None):
    '''
    Three-segment schedule: no reduction up to the trigger offset, the interim
    level for a plateau (one week by default), then the final level. If lift is
    given, the multiplier returns to 1 from that offset.
    '''
    breakpoints = [(trigger, interim), (trigger+plateau, final)]
    if lift is not None:
        breakpoints.append((lift, 1.0))
    return make_schedule(n_days, breakpoints, label=label)


def no_intervention(n_days, label='No intervention'):
    return make_schedule(n_days, label=label)


def date_offset(date, start_day):
    '''
    Number of days from the first simulated day to date, so that an intervention
    starting on date is a breakpoint at this offset
    '''
    return (pd.Timestamp(date) - pd.Timestamp(start_day)).days


def generate_scenarios(start_day, n_days, dates, levels):
    '''
    Generate the named NPI scenarios used for projections, as an ordered dict of
    label --> (contact schedule, transmission schedule)

    Args:
        start_day (str): first simulated day
        n_days (int): simulation horizon
        dates (dict): calendar dates of lockdown, tightening, masks and lift
        levels (dict): contact/transmission multipliers for each stage
    '''

    lockdown = date_offset(dates.lockdown, start_day)
    tighten = date_offset(dates.tighten, start_day)
    masks = date_offset(dates.masks, start_day)
    lift = date_offset(dates.lift, start_day)

    none = no_intervention(n_days)
    mask_mandate = make_schedule(n_days, [(masks, levels.masks)], label='Masks')

    # One week at the initial lockdown level before settling at the sustained level
    lockdown_contacts = staged_schedule(n_days, lockdown, levels.initial, levels.sustained, label='Lockdown')
    tightened = make_schedule(n_days, [(lockdown, levels.initial), (lockdown+7, levels.sustained), (tighten, levels.tightened)], label='Tightened lockdown')
    lifted = staged_schedule(n_days, lockdown, levels.initial, levels.sustained, lift=lift, label='Lockdown lifted')

    scns = sc.odict()
    scns['No restrictions'] = (none, none)
    scns['Lockdown'] = (lockdown_contacts, none)
    scns['Lockdown + masks'] = (lockdown_contacts, mask_mandate)
    scns['Tightened lockdown + masks'] = (tightened, mask_mandate)
    scns['Lockdown lifted'] = (lifted, mask_mandate)

    return scns
