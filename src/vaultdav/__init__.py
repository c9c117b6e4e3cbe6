"""
vaultdav -- keep an encrypted vault file on a WebDAV server.

Load it. Stat it. Save it without clobbering somebody else's save.
Conflicts are detected with revision checks built from plain HTTP verbs.
"""

import os

__version__ = "0.1.0"
__author__ = "smilinTux"

VAULTDAV_HOME = os.environ.get("VAULTDAV_HOME", "~/.vaultdav")
