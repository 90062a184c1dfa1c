"""Main settings file.

Settings are split into components. All of them are included here in
order; later components may rely on values defined by earlier ones.
"""

from split_settings.tools import include

include(
    'components/common.py',
    'components/storages.py',
    'components/logging.py',
)
