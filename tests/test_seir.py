'''
Test of the age-structured SEIR model
'''

import numpy as np
import pytest
import seir_model as sm
import npi_tools as npt

mp = npt.config.model_pars
pop_size = 100_000
n_days = 60


def make_seir(R0=3.0):
    return sm.SEIR(mp.contacts, mp.age_dist, R0=R0, sigma=mp.sigma, gamma=mp.gamma)


def test_initial_state():
    state = sm.initial_state(pop_size, mp.age_dist, n_exposed=10, seed_band=1)
    assert state.shape == (4, len(mp.age_dist))
    assert np.isclose(state.sum(), pop_size)
    assert state[1,1] == 10
    assert state[1].sum() == 10
    assert state[2:].sum() == 0
    return


def test_beta():
    ''' The spectral radius of the next generation matrix recovers R0 '''
    for R0 in [1.5, 4.0, 8.0]:
        seir = make_seir(R0)
        a = seir.age_dist
        K = seir.beta/seir.gamma * seir.contacts * np.outer(a, 1/a)
        assert np.isclose(np.max(np.abs(np.linalg.eigvals(K))), R0)
    return


def test_run():
    state = sm.initial_state(pop_size, mp.age_dist, n_exposed=10)
    res = make_seir().run(state, n_days)
    assert len(res['incidence']) == n_days
    assert np.array_equal(res['day'], np.arange(1, n_days+1))
    assert np.all(res['incidence'] >= 0)
    assert res['incidence'].sum() <= pop_size
    totals = res['S'] + res['E'] + res['I'] + res['R']
    assert np.allclose(totals, pop_size)
    return res


def test_interventions():
    ''' Higher R0 gives more infections; suppressing contacts shrinks the epidemic '''
    state = sm.initial_state(pop_size, mp.age_dist, n_exposed=10)
    low = make_seir(2.0).run(state, n_days)['incidence'].sum()
    high = make_seir(4.0).run(state, n_days)['incidence'].sum()
    assert high > low

    contact = np.ones(n_days)
    contact[20:] = 0.1
    suppressed = make_seir(4.0).run(state, n_days, contact_mult=contact)
    assert suppressed['incidence'].sum() < high
    assert suppressed['incidence'][-1] < suppressed['incidence'][25]

    masks = np.full(n_days, 0.5)
    masked = make_seir(4.0).run(state, n_days, transmission_mult=masks)['incidence'].sum()
    assert masked < high
    return


def test_simulate():
    state = sm.initial_state(pop_size, mp.age_dist, n_exposed=10)
    pars = dict(R0=3.0, sigma=mp.sigma, gamma=mp.gamma, contacts=mp.contacts, age_dist=mp.age_dist,
                contact_mult=np.ones(n_days), transmission_mult=np.ones(n_days))
    days, incidence = sm.simulate(n_days, state, pars)
    assert len(days) == len(incidence) == n_days
    assert days[0] == 1 and days[-1] == n_days
    return


def test_errors():
    state = sm.initial_state(pop_size, mp.age_dist)
    seir = make_seir()

    with pytest.raises(sm.ModelError):
        sm.initial_state(100, mp.age_dist, n_exposed=1000, seed_band=0) # More seeds than people
    with pytest.raises(sm.ModelError):
        sm.initial_state(pop_size, mp.age_dist, seed_band=10)

    bad = state.copy()
    bad[0,0] = -5
    with pytest.raises(sm.ModelError):
        seir.run(bad, n_days)
    with pytest.raises(sm.ModelError):
        seir.run(state[:,:2], n_days)
    with pytest.raises(sm.ModelError):
        seir.run(state, n_days, contact_mult=np.ones(n_days-1))
    with pytest.raises(sm.ModelError):
        sm.SEIR(mp.contacts[:2,:2], mp.age_dist, R0=3)
    with pytest.raises(sm.ModelError):
        make_seir(R0=0)
    return


if __name__ == '__main__':
    test_initial_state()
    test_beta()
    res = test_run()
    test_interventions()
    test_simulate()
    test_errors()
