from __future__ import annotations

from conftest import bearer


def test_staff_sets_membership_and_member_can_scan_in(client, app_container, app_accounts):
    uid = app_accounts.member.user_id
    app_container.users_repo.set_membership(uid, expires_at=None)

    resp = client.put(
        f"/users/{uid}/membership",
        json={"expiresAt": "2026-06-30T23:59:59"},
        headers=bearer(app_container, app_accounts.staff),
    )
    assert resp.status_code == 200
    assert resp.get_json()["data"]["membershipExpiresAt"] == "2026-06-30T23:59:59"

    qr = client.post("/attendance/generate-qr", headers=bearer(app_container, app_accounts.member)).get_json()["data"]
    scan = client.post(
        "/attendance/check-in", json={"qrToken": qr["qrToken"]}, headers=bearer(app_container, app_accounts.staff)
    )
    assert scan.status_code == 201


def test_membership_update_needs_expires_at(client, app_container, app_accounts):
    resp = client.put(
        f"/users/{app_accounts.member.user_id}/membership", json={}, headers=bearer(app_container, app_accounts.staff)
    )
    assert resp.status_code == 400


def test_member_cannot_extend_own_membership(client, app_container, app_accounts):
    resp = client.put(
        f"/users/{app_accounts.member.user_id}/membership",
        json={"expiresAt": "2030-01-01T00:00:00"},
        headers=bearer(app_container, app_accounts.member),
    )
    assert resp.status_code == 403


def test_only_managers_change_account_status(client, app_container, app_accounts):
    uid = app_accounts.other_member.user_id

    as_staff = client.put(f"/users/{uid}/status", json={"isActive": False}, headers=bearer(app_container, app_accounts.staff))
    assert as_staff.status_code == 403

    as_manager = client.put(
        f"/users/{uid}/status", json={"isActive": False}, headers=bearer(app_container, app_accounts.manager)
    )
    assert as_manager.status_code == 200
    assert as_manager.get_json()["data"]["isActive"] is False

    bad = client.put(f"/users/{uid}/status", json={"isActive": "no"}, headers=bearer(app_container, app_accounts.manager))
    assert bad.status_code == 400


def test_user_profile_is_self_or_staff(client, app_container, app_accounts):
    uid = app_accounts.member.user_id

    assert client.get(f"/users/{uid}", headers=bearer(app_container, app_accounts.member)).status_code == 200
    assert client.get(f"/users/{uid}", headers=bearer(app_container, app_accounts.other_member)).status_code == 403
    assert client.get("/users/999", headers=bearer(app_container, app_accounts.staff)).status_code == 404
