from .version import __version__, __versiondate__
from . import config
from .errors import *
from .schedules import *
from .data import *
from .calibration import *
from .analysis import *
from .manager import *
