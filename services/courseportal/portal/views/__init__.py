"""Export surface for portal.views.

Endpoints live in submodules by concern:
- portal.views.auth
- portal.views.content
- portal.views.admin
"""

from .admin import *  # noqa: F401,F403
from .auth import *  # noqa: F401,F403
from .content import *  # noqa: F401,F403
