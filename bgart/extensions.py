# bgart/extensions.py
from flask_cors import CORS

from .config import Config
from .storage.session_store import SessionStore

# CORS is a real Flask extension (keeps init_app)
cors = CORS()

# Sessions live next to the other app data
sessions = SessionStore(Config.SESSIONS_DIR)
