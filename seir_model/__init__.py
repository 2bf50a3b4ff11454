from .version import __version__
from .SEIR import *
