"""Tests for the credential pool endpoints."""

from datetime import datetime, timezone

from src.credentials.pool import CredentialCheck, PoolStatus
from src.credentials.schemas import Credential, PoolHealth
from src.sync.errors import DuplicateError, NotFoundError


class TestCredentials:
    def test_list_masks_secrets(self, client, mock_pool):
        resp = client.get("/admin/credentials", params={"provider": "bilibili"})

        item = resp.json()["data"]["items"][0]
        assert item["secret_value"] == "SESS********3456"
        assert "abcdef" not in resp.text
        assert item["usable"] is True
        mock_pool.list_credentials.assert_awaited_once_with("bilibili")

    def test_exhausted_credential_not_usable(self, client, mock_pool):
        mock_pool.list_credentials.return_value[0].error_count = 3

        resp = client.get("/admin/credentials")

        assert resp.json()["data"]["items"][0]["usable"] is False

    def test_pool_health(self, client, mock_pool):
        mock_pool.status.return_value = [
            PoolStatus("bilibili", PoolHealth.DEGRADED, total=2, active=2, usable=1)
        ]

        resp = client.get("/admin/credentials/health")

        assert resp.json()["data"] == [
            {
                "provider": "bilibili",
                "status": "degraded",
                "label": "部分失效",
                "total": 2,
                "active": 2,
                "usable": 1,
            }
        ]

    def test_add(self, client, mock_pool):
        mock_pool.add.return_value = Credential(
            id="cred-2", provider="bilibili", name="backup", secret_value="SESSDATA=zzz999888"
        )

        resp = client.post(
            "/admin/credentials",
            json={"provider": "bilibili", "name": "backup", "secretValue": "SESSDATA=zzz999888"},
        )

        assert resp.status_code == 201
        assert resp.json()["data"]["id"] == "cred-2"
        mock_pool.add.assert_awaited_once_with("bilibili", "backup", "SESSDATA=zzz999888")

    def test_add_duplicate_is_409(self, client, mock_pool):
        mock_pool.add.side_effect = DuplicateError("Credential already exists: bilibili/main")

        resp = client.post(
            "/admin/credentials",
            json={"provider": "bilibili", "name": "main", "secretValue": "x"},
        )

        assert resp.status_code == 409

    def test_reset(self, client, mock_pool):
        mock_pool.reset.return_value = Credential(
            id="cred-1", provider="bilibili", name="main", secret_value="SESSDATA=abcdef123456"
        )

        resp = client.post("/admin/credentials/cred-1/reset")

        assert resp.json()["message"] == "reset"
        assert resp.json()["data"]["error_count"] == 0

    def test_disable_unknown_is_404(self, client, mock_pool):
        mock_pool.disable.side_effect = NotFoundError("Credential not found: nope")

        resp = client.post("/admin/credentials/nope/disable")

        assert resp.status_code == 404

    def test_remove(self, client, mock_pool):
        resp = client.delete("/admin/credentials/cred-1")

        assert resp.json()["data"] == {"id": "cred-1"}
        mock_pool.remove.assert_awaited_once_with("cred-1")

    def test_check_valid(self, client, mock_pool, mock_registry, mock_fetch_client):
        checked_at = datetime(2026, 2, 1, 9, 30, tzinfo=timezone.utc)
        mock_pool.check.return_value = CredentialCheck(
            credential=Credential(
                id="cred-1",
                provider="bilibili",
                name="main",
                secret_value="SESSDATA=abcdef123456",
                last_check_at=checked_at,
                check_result="valid",
            ),
            valid=True,
        )

        resp = client.post("/admin/credentials/cred-1/check")

        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "valid"
        assert body["data"]["valid"] is True
        assert body["data"]["check_result"] == "valid"
        assert body["data"]["last_check_at"] == "2026-02-01T09:30:00+00:00"
        assert "abcdef" not in resp.text
        mock_pool.check.assert_awaited_once_with("cred-1", mock_registry, mock_fetch_client)

    def test_check_invalid(self, client, mock_pool):
        mock_pool.check.return_value = CredentialCheck(
            credential=Credential(
                id="cred-1",
                provider="bilibili",
                name="main",
                secret_value="SESSDATA=abcdef123456",
                check_result="[auth] Bilibili session expired",
            ),
            valid=False,
        )

        resp = client.post("/admin/credentials/cred-1/check")

        assert resp.json()["message"] == "invalid"
        assert resp.json()["data"]["valid"] is False
        assert resp.json()["data"]["check_result"].startswith("[auth]")

    def test_check_unknown_is_404(self, client, mock_pool):
        mock_pool.check.side_effect = NotFoundError("Credential not found: nope")

        resp = client.post("/admin/credentials/nope/check")

        assert resp.status_code == 404
