import pytest

from loandesk import create_app
from loandesk.auth.tokens import create_jwt
from loandesk.auth.users import UserStore
from loandesk.config import TestingConfig
from loandesk.roles import Role
from tests.fakes import FakeSupabase


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def app(supabase):
    app = create_app(TestingConfig, supabase_client=supabase)
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def users(supabase):
    return UserStore(supabase)


@pytest.fixture
def make_user(users):
    def _make(email, role=Role.USER, password="password", full_name=None):
        return users.create(full_name or email.split("@")[0].title(), email, password, role=role)
    return _make


@pytest.fixture
def auth_header(app):
    def _header(user):
        return {"Authorization": f"Bearer {create_jwt(user)}"}
    return _header


@pytest.fixture
def borrower(make_user):
    return make_user("user@example.com")


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", Role.ADMIN)


@pytest.fixture
def super_admin(make_user):
    return make_user("super@example.com", Role.SUPER_ADMIN)
