"""End-to-end HTTP behaviour through FastAPI's TestClient."""

from fastapi.testclient import TestClient

from daywork.core.config import settings
from daywork.core.security import create_access_token
from daywork.main import create_app

from conftest import PASSWORD, FakeMailer

ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}


def register(client, username, role, **extra):
    body = {
        "username": username,
        "password": PASSWORD,
        "full_name": username.title(),
        "phone": "9876543210",
        "email": f"{username}@example.com",
        "role": role,
        "location": "Pune",
    }
    body.update(extra)
    return client.post("/register", json=body)


def job_body(**overrides):
    body = {
        "title": "Shift furniture",
        "description": "Two helpers needed for a morning",
        "location": "Wakad, Pune",
        "category": "Moving",
        "wage": "700/day",
    }
    body.update(overrides)
    return body


class TestAuth:

    def test_register_sets_session(self, client, mailer):
        response = register(client, "ravi", "worker", primary_skill="Masonry")
        assert response.status_code == 201
        payload = response.json()
        assert payload["user"]["username"] == "ravi"
        assert "hashed_password" not in payload["user"]
        assert "verification_code" not in payload["user"]
        assert mailer.sent[0]["email"] == "ravi@example.com"
        assert client.get("/user").json()["username"] == "ravi"

    def test_register_survives_mail_outage(self, storage):
        client = TestClient(create_app(storage=storage, mailer=FakeMailer(fail=True)))
        assert register(client, "ravi", "worker").status_code == 201
        assert storage.get_user_by_username("ravi") is not None

    def test_duplicate_username(self, client):
        register(client, "ravi", "worker")
        response = register(client, "ravi", "employer")
        assert response.status_code == 409
        assert response.json()["field"] == "username"

    def test_malformed_body(self, client):
        response = client.post("/register", json={"username": "ravi"})
        assert response.status_code == 422

    def test_login_and_logout(self, app, make_user):
        make_user("employer", username="meena")
        client = TestClient(app)
        assert client.post("/login", json={"username": "meena", "password": "nope"}).status_code == 401
        response = client.post("/login", json={"username": "meena", "password": PASSWORD})
        assert response.status_code == 200
        assert settings.AUTH_COOKIE_NAME in response.cookies
        assert client.get("/user").status_code == 200

        client.post("/logout")
        assert client.get("/user").status_code == 401

    def test_unauthenticated_requests(self, client):
        assert client.get("/user").status_code == 401
        assert client.post("/jobs", json=job_body()).status_code == 401
        assert client.get("/conversations").status_code == 401
        assert client.get("/verification/status").status_code == 401

    def test_garbage_cookie(self, app):
        client = TestClient(app)
        client.cookies.set(settings.AUTH_COOKIE_NAME, "Bearer not-a-jwt")
        assert client.get("/user").status_code == 401

    def test_session_does_not_survive_wipe(self, storage, client_for, make_user):
        old = client_for(make_user("employer", username="meena"))
        storage.delete_all_users()
        newcomer = make_user("worker", username="newcomer")
        assert storage.get_user(newcomer.id) is not None
        assert old.get("/user").status_code == 401

    def test_token_must_name_the_user(self, app, make_user):
        user = make_user("worker", username="ravi")
        client = TestClient(app)
        token = create_access_token({"sub": str(user.id), "username": "someone-else", "role": "worker"})
        client.cookies.set(settings.AUTH_COOKIE_NAME, token)
        assert client.get("/user").status_code == 401

    def test_update_profile_keeps_role(self, client_for, make_user):
        user = make_user("worker")
        client = client_for(user)
        response = client.patch("/user", json={"full_name": "Ravi K", "role": "employer"})
        assert response.status_code == 200
        assert response.json()["full_name"] == "Ravi K"
        assert response.json()["role"] == "worker"


class TestEmailVerification:

    def test_verify_and_resend(self, client, mailer):
        register(client, "ravi", "worker")
        code = mailer.last_code
        wrong = "000000" if code != "000000" else "111111"
        assert client.post("/verify-email", json={"code": wrong}).status_code == 400

        assert client.post("/resend-verification").json()["message"] == "Verification email sent successfully"
        response = client.post("/verify-email", json={"code": mailer.last_code})
        assert response.status_code == 200
        assert client.get("/user").json()["email_verified"] is True

        assert client.post("/verify-email", json={"code": "123456"}).status_code == 200
        assert client.post("/resend-verification").json()["message"] == "Email already verified"

    def test_code_must_be_six_digits(self, client):
        register(client, "ravi", "worker")
        assert client.post("/verify-email", json={"code": "\u00e9" * 6}).status_code == 422
        assert client.post("/verify-email", json={"code": "12ab56"}).status_code == 422


class TestMarketplaceFlow:

    def test_apply_complete_rate(self, storage, client_for, make_user):
        employer = make_user("employer")
        worker = make_user("worker", skill="Moving")
        boss = client_for(employer)
        hand = client_for(worker)

        job = boss.post("/jobs", json=job_body())
        assert job.status_code == 201
        job_id = job.json()["id"]
        assert job.json()["is_active"] is True

        applied = hand.post(f"/jobs/{job_id}/apply")
        assert applied.status_code == 201
        assert hand.post(f"/jobs/{job_id}/apply").status_code == 409
        assert len(storage.get_applications_by_job(job_id)) == 1

        early = boss.post("/ratings", json={"worker_id": worker.id, "job_id": job_id, "rating": 4})
        assert early.status_code == 409

        app_id = applied.json()["id"]
        done = boss.patch(f"/applications/{app_id}", json={"status": "completed"})
        assert done.status_code == 200
        assert done.json()["status"] == "completed"

        rated = boss.post("/ratings", json={"worker_id": worker.id, "job_id": job_id, "rating": 4})
        assert rated.status_code == 201
        profile = hand.get(f"/workers/{worker.id}").json()["profile"]
        assert profile["average_rating"] == 4
        assert profile["total_ratings"] == 1

        second = boss.post("/jobs", json=job_body(title="Unload a truck")).json()
        assert hand.post(f"/jobs/{second['id']}/apply").status_code == 201

    def test_illegal_transition_leaves_status(self, client_for, make_user, make_job, storage):
        employer = make_user("employer")
        worker = make_user("worker")
        job = make_job(employer)
        app_id = client_for(worker).post(f"/jobs/{job.id}/apply").json()["id"]
        boss = client_for(employer)

        assert boss.patch(f"/applications/{app_id}", json={"status": "rejected"}).status_code == 200
        response = boss.patch(f"/applications/{app_id}", json={"status": "accepted"})
        assert response.status_code == 409
        assert storage.get_application(app_id).status == "rejected"

    def test_role_and_ownership(self, client_for, make_user, make_job):
        employer = make_user("employer")
        rival = make_user("employer")
        worker = make_user("worker")
        job = make_job(employer)

        assert client_for(worker).post("/jobs", json=job_body()).status_code == 403
        assert client_for(rival).patch(f"/jobs/{job.id}", json={"title": "Hijacked"}).status_code == 403
        assert client_for(employer).patch("/jobs/999", json={"title": "x"}).status_code == 404
        assert client_for(employer).post(f"/jobs/{job.id}/apply").status_code == 403

    def test_inactive_jobs_hidden_by_default(self, client, client_for, make_user, make_job):
        employer = make_user("employer")
        open_job = make_job(employer, title="Open")
        closed = make_job(employer, title="Closed")
        client_for(employer).patch(f"/jobs/{closed.id}", json={"is_active": False})

        assert [j["id"] for j in client.get("/jobs").json()] == [open_job.id]
        assert [j["id"] for j in client.get("/jobs", params={"isActive": "false"}).json()] == [closed.id]
        assert client_for(make_user("worker")).post(f"/jobs/{closed.id}/apply").status_code == 409

    def test_job_detail(self, client, client_for, make_user, make_job):
        employer = make_user("employer")
        worker = make_user("worker")
        job = make_job(employer)
        client_for(worker).post(f"/jobs/{job.id}/apply")

        detail = client.get(f"/jobs/{job.id}").json()
        assert detail["job"]["employer"]["id"] == employer.id
        assert detail["applications"][0]["worker"]["id"] == worker.id
        assert client.get("/jobs/999").status_code == 404

    def test_dashboards(self, client_for, make_user, make_job):
        employer = make_user("employer")
        worker = make_user("worker")
        job = make_job(employer)
        hand = client_for(worker)
        hand.post(f"/jobs/{job.id}/apply")

        board = hand.get("/workers/dashboard").json()
        assert board["profile"]["primary_skill"] == "general"
        assert board["applications"][0]["job"]["id"] == job.id
        assert hand.get("/employers/dashboard").status_code == 403

        employer_board = client_for(employer).get("/employers/dashboard").json()
        assert employer_board["jobs"][0]["applications"][0]["worker_id"] == worker.id


class TestPartialUpdates:

    def test_job_fields_cannot_be_nulled(self, client, client_for, make_user, make_job):
        employer = make_user("employer")
        job = make_job(employer)
        boss = client_for(employer)

        response = boss.patch(f"/jobs/{job.id}", json={"title": None, "is_active": None})
        assert response.status_code == 422
        assert client.get(f"/jobs/{job.id}").json()["job"]["title"] == job.title
        assert [j["id"] for j in client.get("/jobs").json()] == [job.id]

    def test_nullable_job_field(self, client_for, make_user, make_job):
        employer = make_user("employer")
        job = make_job(employer)
        response = client_for(employer).patch(f"/jobs/{job.id}", json={"duration": None})
        assert response.status_code == 200
        assert response.json()["duration"] is None

    def test_profile_skill_cannot_be_nulled(self, client_for, make_user, storage):
        worker = make_user("worker", skill="Tiling")
        response = client_for(worker).patch("/workers/profile", json={"primary_skill": None})
        assert response.status_code == 422
        assert storage.get_worker_profile(worker.id).primary_skill == "Tiling"

    def test_account_fields_cannot_be_nulled(self, client_for, make_user, storage):
        user = make_user("worker")
        response = client_for(user).patch("/user", json={"phone": None})
        assert response.status_code == 422
        assert storage.get_user(user.id).phone == user.phone


class TestWorkers:

    def test_listing_and_filters(self, client, make_user):
        make_user("worker", skill="Electrician")
        make_user("worker", skill="Plumbing")
        make_user("worker")

        everyone = client.get("/workers").json()
        assert len(everyone) == 3
        assert sum(1 for w in everyone if w["profile"] is None) == 1
        electric = client.get("/workers", params={"skill": "ELECTR"}).json()
        assert [w["primary_skill"] for w in electric] == ["Electrician"]
        assert len(client.get("/workers", params={"topRated": "true", "limit": 1}).json()) == 1

    def test_profile_update(self, client_for, make_user):
        worker = make_user("worker", skill="Tiling")
        response = client_for(worker).patch("/workers/profile", json={"is_available": False})
        assert response.json()["is_available"] is False
        assert response.json()["primary_skill"] == "Tiling"

    def test_application_history_visibility(self, client_for, make_user):
        worker = make_user("worker")
        other = make_user("worker")
        assert client_for(worker).get(f"/workers/{worker.id}/applications").status_code == 200
        assert client_for(other).get(f"/workers/{worker.id}/applications").status_code == 403
        assert client_for(make_user("employer")).get(f"/workers/{worker.id}/applications").status_code == 200

    def test_unknown_worker(self, client, make_user):
        assert client.get(f"/workers/{make_user('employer').id}").status_code == 404


class TestMessaging:

    def test_conversation_flow(self, client_for, make_user):
        worker = make_user("worker")
        employer = make_user("employer")
        hand = client_for(worker)
        boss = client_for(employer)

        conv = boss.post("/conversations", json={"participant_id": worker.id})
        assert conv.status_code == 201
        conv_id = conv.json()["id"]
        assert hand.post("/conversations", json={"participant_id": employer.id}).json()["id"] == conv_id

        sent = boss.post(f"/conversations/{conv_id}/messages", json={"content": "Free tomorrow?"})
        assert sent.status_code == 201

        listing = hand.get("/conversations").json()
        assert listing[0]["unread_count"] == 1
        assert listing[0]["last_message"]["content"] == "Free tomorrow?"
        assert listing[0]["other_participant"]["id"] == employer.id

        read = hand.patch(f"/conversations/{conv_id}/read").json()
        assert read["updated"] == 1
        assert hand.patch(f"/conversations/{conv_id}/read").json()["updated"] == 0

        opened = hand.get(f"/conversations/{conv_id}").json()
        assert opened["messages"][0]["read_at"] is not None

    def test_outsider_and_self(self, client_for, make_user):
        worker = make_user("worker")
        employer = make_user("employer")
        conv_id = client_for(employer).post("/conversations", json={"participant_id": worker.id}).json()["id"]

        outsider = client_for(make_user("worker"))
        assert outsider.get(f"/conversations/{conv_id}").status_code == 403
        assert outsider.post(f"/conversations/{conv_id}/messages", json={"content": "hi"}).status_code == 403
        assert client_for(worker).post("/conversations", json={"participant_id": worker.id}).status_code == 400
        assert client_for(worker).post("/conversations", json={"participant_id": 999}).status_code == 404

    def test_mark_single_message(self, client_for, make_user):
        worker = make_user("worker")
        employer = make_user("employer")
        boss = client_for(employer)
        conv_id = boss.post("/conversations", json={"participant_id": worker.id}).json()["id"]
        msg_id = boss.post(f"/conversations/{conv_id}/messages", json={"content": "hi"}).json()["id"]

        assert boss.patch(f"/messages/{msg_id}/read").json()["read_at"] is None
        assert client_for(worker).patch(f"/messages/{msg_id}/read").json()["read_at"] is not None

    def test_user_search(self, client_for, make_user):
        me = make_user("employer", username="meena")
        make_user("worker", username="ravi")
        client = client_for(me)
        results = client.get("/search/users", params={"query": "ravi"}).json()
        assert [r["username"] for r in results] == ["ravi"]
        assert set(results[0]) == {"id", "username", "full_name", "location", "role"}
        assert client.get("/search/users").status_code == 400


class TestIdentityVerification:

    def form(self, **overrides):
        data = {
            "document_type": "pan_card",
            "document_number": "ABCDE1234F",
            "date_of_birth": "1992-03-04",
            "address": "Flat 3, Aundh, Pune",
        }
        data.update(overrides)
        return data

    def test_submit_then_review(self, client_for, make_user):
        worker = make_user("worker", skill="Driving")
        client = client_for(worker)
        response = client.post(
            "/verification/submit",
            data=self.form(),
            files={"document": ("pan.jpg", b"\xff\xd8\xff fake jpeg", "image/jpeg")},
        )
        assert response.status_code == 201
        assert response.json()["user"]["verification_status"] == "pending"

        state = client.get("/verification/status").json()
        assert state["is_verified"] is False
        doc_id = state["documents"][0]["id"]

        assert client.post(
            f"/admin/verification/{doc_id}/review", json={"status": "verified"}
        ).status_code == 403
        reviewed = client.post(
            f"/admin/verification/{doc_id}/review", json={"status": "verified", "notes": "ok"},
            headers=ADMIN_HEADERS,
        )
        assert reviewed.status_code == 200
        state = client.get("/verification/status").json()
        assert state["verification_status"] == "verified"
        assert state["is_verified"] is True

    def test_rejects_minor_and_bad_file(self, client_for, make_user):
        client = client_for(make_user("worker"))
        minor = client.post(
            "/verification/submit",
            data=self.form(date_of_birth="2015-01-01"),
            files={"document": ("id.png", b"png", "image/png")},
        )
        assert minor.status_code == 400
        assert minor.json()["field"] == "date_of_birth"

        pdf = client.post(
            "/verification/submit",
            data=self.form(),
            files={"document": ("id.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert pdf.status_code == 400
        assert pdf.json()["field"] == "document"

        missing = client.post("/verification/submit", data=self.form())
        assert missing.status_code == 400


class TestAdmin:

    def test_delete_all_users(self, client, storage, make_user, make_job):
        make_job(make_user("employer"))
        make_user("worker", skill="Cooking")
        assert client.post("/admin/delete-all-users").status_code == 403
        assert client.post("/admin/delete-all-users", headers={"X-Admin-Key": "wrong"}).status_code == 403
        latin1 = {"X-Admin-Key": "cl\u00e9".encode("latin-1")}
        assert client.post("/admin/delete-all-users", headers=latin1).status_code == 403

        response = client.post("/admin/delete-all-users", headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert storage.get_users() == []
        assert client.get("/jobs").json() == []


class TestErrors:

    def test_unexpected_error_is_generic_500(self, app, storage, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("database on fire")

        monkeypatch.setattr(storage, "get_jobs", explode)
        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/jobs")
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}

    def test_root(self, client):
        assert client.get("/").json()["status"] == "ok"
