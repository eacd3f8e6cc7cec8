# destchoice
# See full license in LICENSE.txt.

__doc__ = "Mode restriction and discretionary destination choice"

__version__ = "0.3.0"
