import json
import threading
from datetime import date
from decimal import Decimal

from agreement_manager.models.models import Agreement, User
from agreement_manager.core.errors import TransactionFailure
from agreement_manager.services.backup import (
    export_snapshot,
    load_snapshot_file,
    parse_snapshot,
    restore_snapshot,
    write_snapshot_file,
)


def _agreement_rows(db_session):
    db_session.expire_all()
    columns = [column.key for column in Agreement.__table__.columns]
    return [
        tuple(getattr(row, name) for name in columns)
        for row in db_session.query(Agreement).order_by(Agreement.id).all()
    ]


def _seed(create_user, create_agreement):
    admin = create_user("root", role="admin")
    clerk = create_user("clerk")
    create_agreement(admin, owner_name="Asha", total_payment=Decimal("500"))
    create_agreement(clerk, owner_name="Vikram", agreement_date=date(2024, 5, 1), total_payment=Decimal("250.50"))
    return admin, clerk


def test_backup_is_admin_only(client, create_user, auth_headers):
    response = client.get("/api/backup", headers=auth_headers(create_user("clerk")))

    assert response.status_code == 403


def test_backup_document_shape(client, create_user, create_agreement, auth_headers):
    admin, _ = _seed(create_user, create_agreement)

    response = client.get("/api/backup", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.headers["content-disposition"].startswith('attachment; filename="agreement-backup-')
    body = response.json()
    assert body["version"] == "1.0"
    assert body["exportDate"]
    assert [user["username"] for user in body["data"]["users"]] == ["root", "clerk"]
    assert body["data"]["users"][0]["passwordHash"].startswith("$2")
    assert [item["ownerName"] for item in body["data"]["agreements"]] == ["Asha", "Vikram"]


def test_restore_round_trip_returns_to_snapshot_state(client, create_user, create_agreement, auth_headers, db_session):
    admin, _ = _seed(create_user, create_agreement)
    headers = auth_headers(admin)
    snapshot = client.get("/api/backup", headers=headers).json()
    before = _agreement_rows(db_session)

    created = client.post("/api/agreements", json={"ownerName": "Later", "location": "Baner"}, headers=headers)
    assert created.status_code == 201
    client.delete(f"/api/agreements/{before[0][0]}", headers=headers)

    response = client.post("/api/restore", json=snapshot, headers=headers)

    assert response.status_code == 200
    assert response.json() == {
        "message": "Backup restored successfully",
        "usersRestored": 1,
        "agreementsRestored": 2,
    }
    assert _agreement_rows(db_session) == before


def test_restore_is_idempotent(client, create_user, create_agreement, auth_headers, db_session):
    admin, _ = _seed(create_user, create_agreement)
    headers = auth_headers(admin)
    snapshot = client.get("/api/backup", headers=headers).json()

    client.post("/api/restore", json=snapshot, headers=headers)
    once = _agreement_rows(db_session)
    client.post("/api/restore", json=snapshot, headers=headers)

    assert _agreement_rows(db_session) == once


def test_restore_replays_other_users(client, create_user, create_agreement, auth_headers, db_session):
    admin, clerk = _seed(create_user, create_agreement)
    clerk_id = clerk.id
    headers = auth_headers(admin)
    snapshot = client.get("/api/backup", headers=headers).json()
    create_user("intruder")

    client.post("/api/restore", json=snapshot, headers=headers)

    db_session.expire_all()
    assert [user.username for user in db_session.query(User).order_by(User.id)] == ["root", "clerk"]
    login = client.post("/api/auth/login", json={"username": "clerk", "password": "changeme123"})
    assert login.status_code == 200
    assert login.json()["user"]["id"] == clerk_id


def test_caller_survives_restore_and_can_log_in(client, create_user, create_agreement, auth_headers, db_session):
    admin, _ = _seed(create_user, create_agreement)
    admin_id = admin.id
    headers = auth_headers(admin)
    snapshot = client.get("/api/backup", headers=headers).json()
    # A snapshot from another installation that does not know the caller at all
    snapshot["data"]["users"] = [user for user in snapshot["data"]["users"] if user["username"] != "root"]
    snapshot["data"]["agreements"] = [item for item in snapshot["data"]["agreements"] if item["userId"] != admin_id]

    response = client.post("/api/restore", json=snapshot, headers=headers)

    assert response.status_code == 200
    login = client.post("/api/auth/login", json={"username": "root", "password": "changeme123"})
    assert login.status_code == 200
    assert client.get("/api/auth/me", headers=headers).json()["id"] == admin_id


def test_restore_reowns_agreements_of_the_callers_snapshot_alias(client, create_user, auth_headers, db_session, password_hash):
    admin = create_user("root", role="admin")
    snapshot = {
        "exportDate": "2024-06-01T10:00:00Z",
        "version": "1.0",
        "data": {
            "users": [
                {"id": 77, "username": "root", "email": "old-root@example.com", "passwordHash": password_hash, "role": "admin"},
            ],
            "agreements": [
                {
                    "id": 5,
                    "userId": 77,
                    "ownerName": "Asha",
                    "location": "Baner",
                    "totalPayment": "100.00",
                    "govtCharges": "0.00",
                    "margin": "0.00",
                    "paymentFromOwner": "0.00",
                    "paymentFromTenant": "0.00",
                    "paymentDue": "100.00",
                    "stampDuty": "0.00",
                    "registrationCharges": "1000.00",
                    "dhc": "300.00",
                    "serviceCharge": "0.00",
                    "policeVerification": "0.00",
                    "outstationCharges": "0.00",
                    "agreementStatus": "Registered",
                    "policeVerificationComplete": False,
                }
            ],
        },
    }

    response = client.post("/api/restore", json=snapshot, headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["usersRestored"] == 0
    db_session.expire_all()
    (restored,) = db_session.query(Agreement).all()
    assert (restored.id, restored.user_id, restored.owner_name) == (5, admin.id, "Asha")
    assert restored.payment_due == Decimal("100.00")
    assert restored.agreement_status == "Registered"
    assert restored.notes == ""


def test_restore_rejects_empty_document_without_deleting(client, create_user, create_agreement, auth_headers, db_session):
    admin, _ = _seed(create_user, create_agreement)
    before = _agreement_rows(db_session)

    response = client.post("/api/restore", json={}, headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json()["error"] == "MalformedSnapshot"
    assert _agreement_rows(db_session) == before


def test_restore_rejects_invalid_entries_without_deleting(client, create_user, create_agreement, auth_headers, db_session):
    admin, _ = _seed(create_user, create_agreement)
    headers = auth_headers(admin)
    snapshot = client.get("/api/backup", headers=headers).json()
    snapshot["data"]["agreements"][0]["agreementStatus"] = "Lost"
    before = _agreement_rows(db_session)

    response = client.post("/api/restore", json=snapshot, headers=headers)

    assert response.status_code == 400
    assert response.json()["errors"]
    assert _agreement_rows(db_session) == before


def test_failed_restore_leaves_store_unchanged(client, create_user, create_agreement, auth_headers, db_session):
    admin, _ = _seed(create_user, create_agreement)
    headers = auth_headers(admin)
    snapshot = client.get("/api/backup", headers=headers).json()
    # Two records with the same id violate the primary key after the deletes already ran
    snapshot["data"]["agreements"].append(dict(snapshot["data"]["agreements"][0]))
    before = _agreement_rows(db_session)

    response = client.post("/api/restore", json=snapshot, headers=headers)

    assert response.status_code == 500
    assert response.json()["error"] == "TransactionFailure"
    assert _agreement_rows(db_session) == before
    db_session.expire_all()
    assert db_session.query(User).count() == 2


def test_restore_with_agreement_for_unknown_user_rolls_back(client, create_user, create_agreement, auth_headers, db_session):
    admin, _ = _seed(create_user, create_agreement)
    headers = auth_headers(admin)
    snapshot = client.get("/api/backup", headers=headers).json()
    snapshot["data"]["agreements"][1]["userId"] = 9999
    before = _agreement_rows(db_session)

    response = client.post("/api/restore", json=snapshot, headers=headers)

    assert response.status_code == 500
    assert _agreement_rows(db_session) == before


def test_unknown_snapshot_version_is_accepted(client, create_user, create_agreement, auth_headers, caplog):
    admin, _ = _seed(create_user, create_agreement)
    headers = auth_headers(admin)
    snapshot = client.get("/api/backup", headers=headers).json()
    snapshot["version"] = "0.9"

    response = client.post("/api/restore", json=snapshot, headers=headers)

    assert response.status_code == 200
    assert "unrecognised version 0.9" in caplog.text


def test_restore_is_admin_only(client, create_user, auth_headers):
    response = client.post(
        "/api/restore", json={"version": "1.0", "data": {"users": []}}, headers=auth_headers(create_user("clerk"))
    )

    assert response.status_code == 403


def test_snapshot_file_round_trip(create_user, create_agreement, db_session, tmp_path):
    _seed(create_user, create_agreement)
    snapshot = export_snapshot(db_session)

    path = write_snapshot_file(snapshot, tmp_path / "snapshots")

    assert path.name.startswith("agreement-backup-")
    assert json.loads(path.read_text())["data"]["users"][1]["username"] == "clerk"
    loaded = load_snapshot_file(path)
    assert [item.owner_name for item in loaded.data.agreements] == ["Asha", "Vikram"]


def test_restore_rejects_other_user_holding_the_callers_id(client, create_user, create_agreement, auth_headers, db_session):
    admin, _ = _seed(create_user, create_agreement)
    headers = auth_headers(admin)
    snapshot = client.get("/api/backup", headers=headers).json()
    # Same id as the restoring admin, but a different person
    snapshot["data"]["users"][0].update({"username": "bob", "email": "bob@example.com"})
    before = _agreement_rows(db_session)

    response = client.post("/api/restore", json=snapshot, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"] == "MalformedSnapshot"
    assert "bob" in response.json()["detail"]
    assert _agreement_rows(db_session) == before
    db_session.expire_all()
    assert [user.username for user in db_session.query(User).order_by(User.id)] == ["root", "clerk"]


def _snapshot_agreements(snapshot):
    return [item.model_dump() for item in snapshot.data.agreements]


def test_concurrent_restores_leave_exactly_one_snapshot(database, create_user, create_agreement, db_session):
    admin, _ = _seed(create_user, create_agreement)
    admin_id = admin.id
    first = export_snapshot(db_session)
    document = first.model_dump(mode="json", by_alias=True)
    for item in document["data"]["agreements"]:
        item["id"] += 100
        item["ownerName"] = f"{item['ownerName']} (second)"
    second = parse_snapshot(document)

    barrier = threading.Barrier(2, timeout=10)
    outcomes = {}

    def _restore(name, snapshot):
        session = database.session()
        try:
            barrier.wait()
            restore_snapshot(session, snapshot, admin_id)
            outcomes[name] = "restored"
        except TransactionFailure:
            outcomes[name] = "failed"
        except Exception as exc:  # surfaced through the assertion below
            outcomes[name] = repr(exc)
        finally:
            session.close()

    threads = [
        threading.Thread(target=_restore, args=("first", first)),
        threading.Thread(target=_restore, args=("second", second)),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes.values()) in (["failed", "restored"], ["restored", "restored"])
    db_session.expire_all()
    final = _snapshot_agreements(export_snapshot(db_session))
    assert final in (_snapshot_agreements(first), _snapshot_agreements(second))
