"""
gifframes is a small library that decodes GIF87a/89a files into fully composited RGBA animation frames.

Based on the GIF89a spec, currently hosted here:

https://www.w3.org/Graphics/GIF/spec-gif89a.txt
"""

from .gif import *
from .constants import *
from .errors import *
from .compositor import *
from .decoder import *

__version__ = "0.1.0"
