'''
Tests of the daily intervention schedules
'''

import numpy as np
import sciris as sc
import pytest
import npi_tools as npt


def test_lockdown_and_lift():
    ''' Lockdown from day 16 at half contacts, lifted on day 46 '''
    s = npt.make_schedule(46, [(15, 0.5), (45, 1.0)], label='Lockdown')
    assert len(s) == 46
    assert s.day(1) == 1.0
    assert s.day(15) == 1.0
    assert s.day(16) == 0.5
    assert s.day(45) == 0.5
    assert s.day(46) == 1.0
    return s


def test_length_and_range():
    for n_days in [10, 46, 123]:
        for breakpoints in [[], [(0, 0.2)], [(3, 0.7), (5, 0.0)], [(-2, 0.4), (n_days, 0.9)]]:
            s = npt.make_schedule(n_days, breakpoints)
            assert len(s) == n_days
            assert np.all((s.values >= 0) & (s.values <= 1))
    return


def test_idempotent():
    breakpoints = [(10, 0.7), (17, 0.5), (40, 1.0)]
    s1 = npt.make_schedule(60, breakpoints)
    s2 = npt.make_schedule(60, breakpoints)
    assert s1 == s2
    assert np.array_equal(s1.values, s2.values)
    return


def test_horizon_equal_to_last_offset():
    s = npt.make_schedule(30, [(10, 0.6), (30, 0.2)])
    assert len(s) == 30
    assert s.day(29) == 0.6
    assert s.day(30) == 0.2
    return


def test_clamping_and_ties():
    s = npt.make_schedule(10, [(-3, 0.4)])
    assert np.all(s.values == 0.4)

    s = npt.make_schedule(10, [(4, 0.3), (4, 0.8)]) # Same day: the later one wins
    assert s.day(4) == 1.0
    assert s.day(5) == 0.8
    return


def test_staged():
    ''' One week at the interim level, then the final level, then lifted '''
    s = npt.staged_schedule(40, trigger=10, interim=0.7, final=0.5, lift=30)
    assert s.day(10) == 1.0
    assert all(s.day(k) == 0.7 for k in range(11, 18))
    assert s.day(18) == 0.5
    assert s.day(30) == 0.5
    assert s.day(31) == 1.0
    assert len(s.breakpoints) == 3
    return


def test_invalid():
    with pytest.raises(npt.ConfigurationError):
        npt.make_schedule(46, [(15, 1.5)])
    with pytest.raises(npt.ConfigurationError):
        npt.make_schedule(46, [(15, -0.1)])
    with pytest.raises(npt.ConfigurationError):
        npt.make_schedule(46, [(20, 0.5), (15, 0.7)]) # Out of order
    with pytest.raises(npt.ConfigurationError):
        npt.make_schedule(20, [(15, 0.5), (25, 1.0)]) # Horizon too short
    with pytest.raises(npt.ConfigurationError):
        npt.make_schedule(0)
    with pytest.raises(npt.ConfigurationError):
        npt.DailySchedule([0.5, 1.2])
    return


def test_read_only():
    s = npt.make_schedule(20, [(5, 0.5)])
    with pytest.raises(ValueError):
        s.values[0] = 0
    s2 = sc.dcp(s)
    assert s2 == s
    with pytest.raises(ValueError):
        s2.values[0] = 0
    with pytest.raises(IndexError):
        s.day(0)
    return


def test_date_offset():
    start_day = '2021-06-16'
    offset = npt.date_offset('2021-06-26', start_day)
    assert offset == 10
    s = npt.make_schedule(30, [(offset, 0.5)])
    assert s.day(10) == 1.0 # 25 June
    assert s.day(11) == 0.5 # 26 June
    return


def test_scenarios():
    cfg = npt.config
    n_days = cfg.sim_pars.n_days
    scns = npt.generate_scenarios(cfg.sim_pars.start_day, n_days, cfg.dates, cfg.levels)
    assert len(scns) == 5
    for label, (contact, transmission) in scns.items():
        assert isinstance(contact, npt.DailySchedule)
        assert len(contact) == len(transmission) == n_days

    contact, transmission = scns['No restrictions']
    assert np.all(contact.values == 1) and np.all(transmission.values == 1)

    lifted, _ = scns['Lockdown lifted']
    assert lifted.day(n_days) == 1.0
    assert scns['Tightened lockdown + masks'][0].values.min() == cfg.levels.tightened
    return scns


if __name__ == '__main__':
    test_lockdown_and_lift()
    test_length_and_range()
    test_idempotent()
    test_horizon_equal_to_last_offset()
    test_clamping_and_ties()
    test_staged()
    test_invalid()
    test_read_only()
    test_date_offset()
    scns = test_scenarios()
