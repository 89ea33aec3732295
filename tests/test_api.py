from io import BytesIO

from loandesk.auth.tokens import create_jwt
from loandesk.settings import SettingsService
from tests.helpers import application_form


def _apply(client, header, **overrides):
    return client.post("/loans/apply", json=application_form(**overrides), headers=header)


# --- auth -------------------------------------------------------------------

def test_register_returns_profile_and_token(client):
    resp = client.post("/auth/register", json={
        "full_name": "New Person",
        "email": "New@Example.com",
        "password": "secret",
        "role": "super_admin",
    })
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["status"] == "success"
    assert body["data"]["email"] == "new@example.com"
    assert body["data"]["role"] == "user"
    assert body["data"]["token"]
    assert "password_hash" not in body["data"]


def test_register_duplicate_email(client, borrower):
    resp = client.post("/auth/register", json={
        "full_name": "Again", "email": borrower["email"], "password": "x"})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "User already exists"


def test_login(client, borrower):
    resp = client.post("/auth/login", json={"email": "user@example.com", "password": "password"})
    assert resp.status_code == 200
    token = resp.get_json()["data"]["token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.get_json()["data"]["id"] == borrower["id"]


def test_login_failures(client, borrower):
    assert client.post("/auth/login", json={"email": "user@example.com"}).status_code == 400
    bad = client.post("/auth/login", json={"email": "user@example.com", "password": "nope"})
    assert bad.status_code == 401
    assert bad.get_json() == {"status": "error", "message": "Invalid email or password"}
    assert client.post("/auth/login", json={"email": "ghost@example.com", "password": "x"}).status_code == 401


def test_identity_fields_must_be_strings(client, borrower):
    resp = client.post("/auth/register", json={"full_name": "X", "email": 123, "password": "x"})
    assert resp.status_code == 400
    assert resp.get_json()["status"] == "error"
    assert client.post("/auth/register", json={
        "full_name": "X", "email": "x@example.com", "password": 12345}).status_code == 400
    assert client.post("/auth/login", json={"email": 123, "password": "x"}).status_code == 400
    assert client.post("/auth/login", json={"email": "user@example.com", "password": 123}).status_code == 400


def test_auth_bodies_must_be_objects(client):
    for path in ("/auth/register", "/auth/login"):
        resp = client.post(path, json=["user@example.com", "password"])
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Request body must be a JSON object"


def test_token_problems_are_401(client, borrower):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401
    expired = create_jwt(borrower, expires_minutes=-5)
    resp = client.get("/auth/me", headers={"Authorization": f"Bearer {expired}"})
    assert resp.status_code == 401
    assert "expired" in resp.get_json()["message"]


# --- public settings and calculator -----------------------------------------

def test_public_settings(client):
    limits = client.get("/loans/settings/limits").get_json()["data"]
    assert limits == {"min": 5000, "max": 100000}
    numbers = client.get("/loans/settings/payment-numbers").get_json()["data"]
    assert set(numbers) == {"bKash", "Nagad", "Rocket"}


def test_calculator(client):
    data = client.get("/loans/calculate?amount=10000&duration=3").get_json()["data"]
    assert data["emi_amount"] == 3633.33
    assert data["total_interest"] == 900.00
    assert data["total_repayment"] == 10900.00
    assert data["down_payment"] == 1000.00
    assert data["interest_rate"] == 0.03


def test_calculator_zero_fallback(client):
    data = client.get("/loans/calculate?amount=-1&duration=6").get_json()["data"]
    assert data["emi_amount"] == 0
    assert data["total_repayment"] == 0
    assert client.get("/loans/calculate").status_code == 200


def test_calculator_huge_amount_falls_back_to_zeros(client):
    resp = client.get("/loans/calculate?amount=10000000000000000000000000000&duration=3")
    assert resp.status_code == 200
    assert resp.get_json()["data"]["emi_amount"] == 0


# --- loans ------------------------------------------------------------------

def test_apply_and_read_back(client, borrower, auth_header):
    resp = _apply(client, auth_header(borrower))
    assert resp.status_code == 201
    loan = resp.get_json()["data"]
    assert loan["status"] == "Pending"
    assert loan["emi_amount"] == 3633.33

    fetched = client.get(f"/loans/{loan['id']}", headers=auth_header(borrower))
    assert fetched.status_code == 200
    assert fetched.get_json()["data"]["user"]["email"] == borrower["email"]


def test_apply_requires_login(client):
    assert client.post("/loans/apply", json=application_form()).status_code == 401


def test_apply_out_of_range(client, borrower, auth_header):
    resp = _apply(client, auth_header(borrower), loan_amount=3000)
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["message"] == "Loan amount must be between 5000 and 100000"
    assert body["details"]["min"] == 5000


def test_apply_multipart_records_filenames(client, borrower, auth_header):
    form = {k: str(v) for k, v in application_form().items()}
    for field in ("nid_front_url", "nid_back_url", "downpayment_screenshot_url"):
        form.pop(field)
    form["nid_front_url"] = (BytesIO(b"front"), "my front.jpg")
    form["nid_back_url"] = (BytesIO(b"back"), "../back.jpg")
    form["downpayment_screenshot_url"] = (BytesIO(b"shot"), "receipt.png")
    resp = client.post("/loans/apply", data=form, headers=auth_header(borrower),
                       content_type="multipart/form-data")
    assert resp.status_code == 201
    loan = resp.get_json()["data"]
    assert loan["nid_front_url"] == "my_front.jpg"
    assert loan["nid_back_url"] == "back.jpg"
    assert loan["loan_amount"] == 10000.0


def test_apply_multipart_without_files(client, borrower, auth_header):
    form = {k: str(v) for k, v in application_form().items()}
    form.pop("nid_back_url")
    resp = client.post("/loans/apply", data=form, headers=auth_header(borrower),
                       content_type="multipart/form-data")
    assert resp.status_code == 400
    assert "nid_back_url" in resp.get_json()["message"]


def test_listing_is_scoped(client, borrower, admin, make_user, auth_header):
    other = make_user("other@example.com")
    _apply(client, auth_header(borrower))
    _apply(client, auth_header(other))

    own = client.get("/loans", headers=auth_header(borrower)).get_json()["data"]
    assert len(own) == 1 and own[0]["user_id"] == borrower["id"]
    everything = client.get("/loans", headers=auth_header(admin)).get_json()["data"]
    assert len(everything) == 2
    assert client.get("/loans?status=Approved", headers=auth_header(admin)).get_json()["data"] == []
    assert client.get("/loans?status=Lost", headers=auth_header(admin)).status_code == 400


def test_foreign_loan_is_403_and_missing_is_404(client, borrower, make_user, auth_header):
    loan = _apply(client, auth_header(borrower)).get_json()["data"]
    other = make_user("other@example.com")
    resp = client.get(f"/loans/{loan['id']}", headers=auth_header(other))
    assert resp.status_code == 403
    assert resp.get_json()["message"] == "Not authorized"
    assert client.get("/loans/nope", headers=auth_header(other)).status_code == 404


def test_apply_body_must_be_an_object(client, borrower, auth_header):
    resp = client.post("/loans/apply", json=[application_form()], headers=auth_header(borrower))
    assert resp.status_code == 400
    assert resp.get_json() == {"status": "error", "message": "Request body must be a JSON object"}
    assert client.get("/loans", headers=auth_header(borrower)).get_json()["data"] == []


# --- admin ------------------------------------------------------------------

def test_status_transition(client, borrower, admin, super_admin, auth_header):
    loan = _apply(client, auth_header(borrower)).get_json()["data"]
    url = f"/admin/loans/{loan['id']}/status"

    assert client.put(url, json={"status": "Approved"}, headers=auth_header(borrower)).status_code == 403

    approved = client.put(url, json={"status": "Approved"}, headers=auth_header(admin)).get_json()["data"]
    assert approved["status"] == "Approved"
    assert approved["approved_rejected_at"] >= loan["applied_at"]

    rejected = client.put(url, json={"status": "Rejected"}, headers=auth_header(super_admin))
    assert rejected.status_code == 200
    assert rejected.get_json()["data"]["status"] == "Rejected"

    assert client.put(url, json={}, headers=auth_header(admin)).status_code == 400
    assert client.put("/admin/loans/nope/status", json={"status": "Paid"},
                      headers=auth_header(admin)).status_code == 404


def test_users_listing_hides_hashes(client, borrower, admin, auth_header):
    assert client.get("/admin/users", headers=auth_header(borrower)).status_code == 403
    users = client.get("/admin/users", headers=auth_header(admin)).get_json()["data"]
    assert {u["email"] for u in users} == {borrower["email"], admin["email"]}
    assert all("password_hash" not in u for u in users)


def test_only_super_admin_changes_roles(client, borrower, admin, super_admin, auth_header):
    url = f"/admin/users/{borrower['id']}/role"
    denied = client.put(url, json={"role": "admin"}, headers=auth_header(admin))
    assert denied.status_code == 403
    assert client.put(f"/admin/users/{super_admin['id']}/role", json={"role": "user"},
                      headers=auth_header(admin)).status_code == 403

    resp = client.put(url, json={"role": "admin"}, headers=auth_header(super_admin))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["role"] == "admin"

    # the borrower's existing token now carries admin rights
    assert client.get("/admin/users", headers=auth_header(borrower)).status_code == 200


def test_role_change_errors(client, borrower, super_admin, auth_header):
    header = auth_header(super_admin)
    assert client.put(f"/admin/users/{borrower['id']}/role", json={"role": "owner"},
                      headers=header).status_code == 400
    assert client.put("/admin/users/ghost/role", json={"role": "admin"},
                      headers=header).status_code == 404


def test_settings_updates(client, admin, super_admin, borrower, auth_header):
    limits = {"min": 1000, "max": 20000}
    assert client.put("/admin/settings/loan-limits", json=limits,
                      headers=auth_header(admin)).status_code == 403
    resp = client.put("/admin/settings/loan-limits", json=limits, headers=auth_header(super_admin))
    assert resp.get_json()["data"] == {"min": 1000.0, "max": 20000.0}
    assert client.get("/loans/settings/limits").get_json()["data"] == {"min": 1000.0, "max": 20000.0}
    assert _apply(client, auth_header(borrower), loan_amount=3000).status_code == 201

    numbers = {"bKash": "01711111111", "Nagad": "01822222222", "Rocket": "01933333333"}
    assert client.put("/admin/settings/payment-numbers", json=numbers,
                      headers=auth_header(admin)).status_code == 403
    resp = client.put("/admin/settings/payment-numbers", json=numbers, headers=auth_header(super_admin))
    assert resp.get_json()["data"] == numbers
    assert client.get("/loans/settings/payment-numbers").get_json()["data"] == numbers


def test_admin_bodies_must_be_objects(client, borrower, super_admin, auth_header):
    header = auth_header(super_admin)
    loan_id = _apply(client, auth_header(borrower)).get_json()["data"]["id"]
    for path in (
        "/admin/settings/payment-numbers",
        "/admin/settings/loan-limits",
        f"/admin/loans/{loan_id}/status",
        f"/admin/users/{borrower['id']}/role",
    ):
        resp = client.put(path, json=["a"], headers=header)
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Request body must be a JSON object"


def test_non_finite_limits_are_rejected(client, super_admin, auth_header):
    resp = client.put("/admin/settings/loan-limits", data='{"min": NaN, "max": 1000}',
                      content_type="application/json", headers=auth_header(super_admin))
    assert resp.status_code == 400
    assert client.get("/loans/settings/limits").get_json()["data"] == {"min": 5000, "max": 100000}

# --- error envelope ---------------------------------------------------------

def test_unknown_route_is_json_404(client):
    resp = client.get("/nowhere")
    assert resp.status_code == 404
    assert resp.get_json()["status"] == "error"


def test_unexpected_errors_are_opaque(client, monkeypatch):
    def boom(self):
        raise RuntimeError("connection reset by peer")
    monkeypatch.setattr(SettingsService, "get_limits", boom)
    resp = client.get("/loans/settings/limits")
    assert resp.status_code == 500
    assert resp.get_json() == {"status": "error", "message": "Internal server error"}
