"""imgvariants — expand source images into cached, multiplexed variants."""

from imgvariants.core import ImgVariants, expand
from imgvariants.options.normalize import Computed

__version__ = "0.1.0"

__all__ = ["ImgVariants", "Computed", "expand", "__version__"]
