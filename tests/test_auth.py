import bcrypt

from conftest import PASSWORD
from storefront.utils.security import hash_password, verify_password


def test_password_hash_roundtrip():
    hashed = hash_password("pa55word")
    assert hashed.startswith("$2b$")
    assert verify_password("pa55word", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("pa55word", "plain-text")


def test_register_creates_customer(client):
    resp = client.post("/api/auth/register", json={"email": "New@Test.com", "password": "longpass"})
    assert resp.status_code == 201
    user = resp.json()["data"]["user"]
    assert user["email"] == "new@test.com"
    assert user["role"] == "customer"


def test_register_duplicate(client, customer):
    resp = client.post("/api/auth/register", json={"email": customer.email, "password": "longpass"})
    assert resp.status_code == 409


def test_login_me_logout(client, customer):
    resp = client.post("/api/auth/login", json={"email": customer.email, "password": PASSWORD})
    assert resp.status_code == 200

    me = client.get("/api/auth/me")
    assert me.json()["data"]["user"]["email"] == customer.email

    client.post("/api/auth/logout")
    assert client.get("/api/auth/me").status_code == 401


def test_wrong_password(client, customer):
    resp = client.post("/api/auth/login", json={"email": customer.email, "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Invalid credentials"


def test_inactive_user_cannot_login(client, db, customer):
    customer.is_active = False
    db.commit()
    resp = client.post("/api/auth/login", json={"email": customer.email, "password": PASSWORD})
    assert resp.status_code == 401


def test_rate_limit_after_five_failures(client, customer):
    for _ in range(5):
        client.post("/api/auth/login", json={"email": customer.email, "password": "nope"})

    resp = client.post("/api/auth/login", json={"email": customer.email, "password": PASSWORD})
    assert resp.status_code == 429
    assert resp.json()["error"] == "Too many attempts"


def test_verifies_hashes_made_by_other_bcrypt_implementations():
    # $2a$ хэши (bcryptjs) из старой базы
    legacy = bcrypt.hashpw(b"OldPass1", bcrypt.gensalt(rounds=4, prefix=b"2a")).decode()
    assert verify_password("OldPass1", legacy)
    assert not verify_password("OldPass2", legacy)


def test_long_passwords_use_first_72_bytes():
    hashed = hash_password("x" * 100)
    assert verify_password("x" * 72, hashed)


def test_profile_read_and_update(customer_client):
    resp = customer_client.get("/api/auth/profile")
    assert resp.json()["data"]["user"]["email"] == "buyer@test.com"

    resp = customer_client.put("/api/auth/profile", json={
        "first_name": " Aida ", "phone": "+7 701 555 0101", "date_of_birth": "1995-04-12", "gender": "female",
    })
    assert resp.status_code == 200
    user = resp.json()["data"]["user"]
    assert user["first_name"] == "Aida"
    assert user["phone"] == "+7 701 555 0101"
    assert user["date_of_birth"] == "1995-04-12"

    # null для обязательного имени игнорируется, телефон можно стереть
    user = customer_client.put("/api/auth/profile", json={"first_name": None, "phone": None}).json()["data"]["user"]
    assert user["first_name"] == "Aida"
    assert user["phone"] is None


def test_profile_rejects_bad_gender(customer_client):
    assert customer_client.put("/api/auth/profile", json={"gender": "robot"}).status_code == 400


def test_profile_requires_login(client):
    assert client.get("/api/auth/profile").status_code == 401


def test_change_password(customer_client, customer):
    resp = customer_client.post(
        "/api/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "NewSecret9"},
    )
    assert resp.status_code == 200

    customer_client.post("/api/auth/logout")
    old = customer_client.post("/api/auth/login", json={"email": customer.email, "password": PASSWORD})
    assert old.status_code == 401
    new = customer_client.post("/api/auth/login", json={"email": customer.email, "password": "NewSecret9"})
    assert new.status_code == 200


def test_change_password_wrong_current(customer_client):
    resp = customer_client.post(
        "/api/auth/change-password",
        json={"current_password": "not-it", "new_password": "NewSecret9"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid password"


def test_change_password_too_weak(customer_client):
    resp = customer_client.post(
        "/api/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "alllowercase1"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation failed"
