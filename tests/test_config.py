'''
Very simple test of configuration handling
'''

import sciris as sc
import npi_tools as npt


def test_inputs():
    cfg = npt.config
    cfg.process_inputs(['prog', '--n_days=80', '--R0=5.5', '--parallel'])
    assert cfg.sim_pars.n_days == 80
    assert cfg.sweep_pars.proj_R0 == 5.5
    assert cfg.run_pars.parallel

    mgr = npt.Manager()
    assert mgr.sim_pars.n_days == 80

    cfg.set_default() # Back to default
    assert cfg.sim_pars.n_days == 123
    assert not cfg.run_pars.parallel
    return


def test_overrides():
    ''' Manager inputs are merged with, and do not modify, the defaults '''
    defaults = sc.dcp(npt.config.sweep_pars)
    mgr = npt.Manager(sweep_pars=dict(calib_R0=[2.0]))
    assert mgr.sweep_pars.calib_R0 == [2.0]
    assert mgr.sweep_pars.suppression == defaults.suppression
    assert npt.config.sweep_pars.calib_R0 == defaults.calib_R0
    return


if __name__ == '__main__':
    test_inputs()
    test_overrides()
