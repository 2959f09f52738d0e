#! /usr/bin/env python3

import warnings

from btfdecode.version import __version__

# Raise an exception when a deprecated API is used from within a btfdecode.*
# submodule. This ensures that we don't use any deprecated APIs internally, so
# they are only kept for external backward compatibility purposes.
warnings.filterwarnings(
    action='error',
    category=DeprecationWarning,
    module=fr'{__name__}\..*',
)

# vim :set tabstop=4 shiftwidth=4 textwidth=80 expandtab
