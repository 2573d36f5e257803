from __future__ import annotations

"""Library instances kept apart from the application.

Blueprints import them from here to avoid circular imports; ``create_app``
binds them with ``init_app``.
"""

from flask_limiter import Limiter  # noqa: E402
from flask_limiter.util import get_remote_address  # noqa: E402
from flask_login import LoginManager  # noqa: E402
from flask_wtf.csrf import CSRFProtect  # noqa: E402

from flask_session import Session  # noqa: E402

# Storage and defaults come from app.config in create_app
limiter = Limiter(key_func=get_remote_address)

csrf = CSRFProtect()

# Identity comes from the signed auth cookie (session_security.load_user_from_request)
login_manager = LoginManager()

server_session = Session()
