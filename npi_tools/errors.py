'''
Exceptions raised by the scenario pipeline. None of them are retried: every
computation is deterministic, so a failure points at the inputs.
'''

__all__ = ['ConfigurationError', 'SimulationFailure', 'DataLoadError']


class ConfigurationError(ValueError):
    ''' Invalid schedule, horizon or scenario parameters, raised before anything is run '''
    pass


class SimulationFailure(RuntimeError):
    ''' The model could not produce a result for one configuration; aborts the whole grid '''
    pass


class DataLoadError(IOError):
    ''' The case count file is missing or malformed '''
    pass
