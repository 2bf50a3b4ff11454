'''
Test loading the daily case counts
'''

import numpy as np
import pandas as pd
import pytest
import npi_tools as npt


def write(tmp_path, text, fn='cases.csv'):
    path = tmp_path / fn
    path.write_text(text)
    return str(path)


def test_load(tmp_path):
    rows = ['date,local_known,local_unknown,overseas']
    for d in range(1, 11):
        rows.append(f'{d:02d}/07,{d},{2*d},100')
    fn = write(tmp_path, '\n'.join(rows))

    cases = npt.load_cases(fn, year=2021)
    assert len(cases) == 10
    assert cases['date'].iloc[0] == pd.Timestamp('2021-07-01')
    assert 'overseas' not in cases.columns # Only local sources are counted
    assert np.array_equal(cases['total'], 3*np.arange(1, 11))
    assert cases['rolling'].iloc[0] == 3
    assert np.isclose(cases['rolling'].iloc[-1], np.mean(3*np.arange(4, 11))) # Trailing 7 days
    return cases


def test_unsorted(tmp_path):
    fn = write(tmp_path, 'date,local\n03/07,3\n01/07,1\n02/07,2\n')
    cases = npt.load_cases(fn, year=2021)
    assert list(cases['total']) == [1, 2, 3]
    return


def test_observed(tmp_path):
    rows = ['date,local'] + [f'{d:02d}/06,{d}' for d in range(10, 31)]
    cases = npt.load_cases(write(tmp_path, '\n'.join(rows)), year=2021)
    obs = npt.observed_incidence(cases, '2021-06-16', 10)
    assert len(obs) == 10
    assert obs['day'].iloc[0] == 1
    assert obs['date'].iloc[-1] == pd.Timestamp('2021-06-25')
    return


def test_errors(tmp_path):
    with pytest.raises(npt.DataLoadError):
        npt.load_cases(str(tmp_path / 'missing.csv'))
    with pytest.raises(npt.DataLoadError):
        npt.load_cases(write(tmp_path, 'day,local\n01/07,3\n')) # No date column
    with pytest.raises(npt.DataLoadError):
        npt.load_cases(write(tmp_path, 'date,overseas\n01/07,3\n')) # No local column
    with pytest.raises(npt.DataLoadError):
        npt.load_cases(write(tmp_path, 'date,local\n2021-07-01,3\n'), year=2021) # Not day/month
    with pytest.raises(npt.DataLoadError):
        npt.load_cases(write(tmp_path, 'date,local\n01/07,-3\n'), year=2021)
    with pytest.raises(npt.DataLoadError):
        npt.load_cases(write(tmp_path, 'date,local\n01/07,3\n01/07,4\n'), year=2021) # Duplicate date
    with pytest.raises(npt.DataLoadError):
        npt.load_cases(write(tmp_path, 'date,local_known_source\n'), year=2021) # Header only
    return


def test_default_file():
    ''' The bundled case counts load and cover the calibration window '''
    cfg = npt.config
    cases = npt.load_cases(cfg.paths.data, year=2021)
    obs = npt.observed_incidence(cases, cfg.sim_pars.start_day, cfg.sweep_pars.calib_days)
    assert len(obs) == cfg.sweep_pars.calib_days
    return


if __name__ == '__main__':
    import pathlib, tempfile
    tmp = pathlib.Path(tempfile.mkdtemp())
    cases = test_load(tmp)
    test_unsorted(tmp)
    test_observed(tmp)
    test_errors(tmp)
    test_default_file()
