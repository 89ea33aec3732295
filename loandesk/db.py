from flask import current_app
from httpx import RemoteProtocolError
from supabase import create_client

USERS_TABLE = "users"
LOANS_TABLE = "loan_applications"
SETTINGS_TABLE = "settings"


def init_supabase(app, client=None):
    """Attach a Supabase client to the app; build one from config if not given."""
    if client is None:
        url = app.config.get("SUPABASE_URL")
        key = app.config.get("SUPABASE_KEY")
        if not url or not key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set")
        client = create_client(url, key)
    app.extensions["supabase"] = client
    return client


def get_supabase():
    return current_app.extensions["supabase"]


def sb_exec(qb, attempts=3):
    """
    Execute a Supabase query builder with simple retries to handle transient
    'RemoteProtocolError: Server disconnected' issues.
    """
    last_err = None
    for i in range(attempts):
        try:
            return qb.execute()
        except RemoteProtocolError as e:
            last_err = e
            if i < attempts - 1:
                continue
            raise
    if last_err:
        raise last_err


def rows(resp):
    return resp.data if getattr(resp, "data", None) else []


def first_row(resp):
    data = rows(resp)
    return data[0] if data else None
