__version__ = '0.3.0'
__versiondate__ = '2021-07-30'
