# finmemory/tests/test_account_linker.py
import unittest
from unittest.mock import MagicMock

from finmemory.core import account_linker
from finmemory.core.google_oauth import OAuthError, OAuthTokens


class FakeConnectionsTable:
    """Simula a tabela user_connections com upsert por email_usuario."""

    def __init__(self):
        self.rows = {}
        self.fail = False
        self._pending = None

    def upsert(self, row, on_conflict=None):
        self._pending = (row, on_conflict)
        return self

    def execute(self):
        if self.fail:
            raise RuntimeError("storage unavailable")
        row, on_conflict = self._pending
        self.rows[row[on_conflict]] = dict(row)
        return MagicMock(data=[row])


class TestLinkAccount(unittest.TestCase):
    def setUp(self):
        self.table = FakeConnectionsTable()
        self.mock_supabase_client = MagicMock()
        self.mock_supabase_client.table.return_value = self.table

        self.oauth = MagicMock()
        self.oauth.exchange_code.return_value = OAuthTokens("access-1", "refresh-1")
        self.oauth.fetch_user_email.return_value = "ana@example.com"

    def test_missing_code_does_not_touch_provider_or_storage(self):
        for code in [None, "", "   "]:
            result = account_linker.link_account(code, self.oauth, self.mock_supabase_client)
            self.assertEqual(result.status, account_linker.LINK_MISSING_CODE)
        self.oauth.exchange_code.assert_not_called()
        self.mock_supabase_client.table.assert_not_called()

    def test_success_persists_link_and_redirects_home(self):
        result = account_linker.link_account("code-1", self.oauth, self.mock_supabase_client)

        self.assertTrue(result.ok)
        self.assertEqual(result.redirect_to, "/?success=true")
        self.assertEqual(result.email, "ana@example.com")
        self.oauth.fetch_user_email.assert_called_once_with("access-1")
        self.mock_supabase_client.table.assert_called_with("user_connections")
        self.assertEqual(
            self.table.rows,
            {"ana@example.com": {"email_usuario": "ana@example.com", "refresh_token": "refresh-1", "provider": "google"}},
        )

    def test_second_login_overwrites_refresh_token(self):
        account_linker.link_account("code-1", self.oauth, self.mock_supabase_client)
        self.oauth.exchange_code.return_value = OAuthTokens("access-2", "refresh-2")
        account_linker.link_account("code-2", self.oauth, self.mock_supabase_client)

        self.assertEqual(len(self.table.rows), 1)
        self.assertEqual(self.table.rows["ana@example.com"]["refresh_token"], "refresh-2")

    def test_exchange_failure_redirects_with_error_and_writes_nothing(self):
        self.oauth.exchange_code.side_effect = OAuthError("invalid_grant")

        result = account_linker.link_account("expired", self.oauth, self.mock_supabase_client)

        self.assertEqual(result.status, account_linker.LINK_FAILED)
        self.assertEqual(result.redirect_to, "/?error=auth_failed")
        self.oauth.fetch_user_email.assert_not_called()
        self.assertEqual(self.table.rows, {})

    def test_missing_refresh_token_is_a_failure(self):
        self.oauth.exchange_code.return_value = OAuthTokens("access-1", None)
        result = account_linker.link_account("code-1", self.oauth, self.mock_supabase_client)
        self.assertEqual(result.status, account_linker.LINK_FAILED)
        self.assertEqual(self.table.rows, {})

    def test_identity_failure_redirects_with_error(self):
        self.oauth.fetch_user_email.side_effect = OAuthError("HTTP 401")
        result = account_linker.link_account("code-1", self.oauth, self.mock_supabase_client)
        self.assertEqual(result.redirect_to, "/?error=auth_failed")
        self.assertEqual(self.table.rows, {})

    def test_storage_failure_redirects_with_error(self):
        self.table.fail = True
        result = account_linker.link_account("code-1", self.oauth, self.mock_supabase_client)
        self.assertEqual(result.status, account_linker.LINK_FAILED)
        self.assertEqual(result.redirect_to, "/?error=auth_failed")

    def test_failure_log_does_not_include_tokens(self):
        self.oauth.fetch_user_email.side_effect = OAuthError("HTTP 500")
        with self.assertLogs("finmemory.core.account_linker", level="ERROR") as logs:
            account_linker.link_account("secret-code", self.oauth, self.mock_supabase_client)
        output = "\n".join(logs.output)
        self.assertIn("event=account_link.failed", output)
        self.assertIn("stage='identify'", output)
        self.assertNotIn("secret-code", output)
        self.assertNotIn("refresh-1", output)

    def test_success_log_masks_email(self):
        with self.assertLogs("finmemory.core.account_linker", level="INFO") as logs:
            account_linker.link_account("code-1", self.oauth, self.mock_supabase_client)
        output = "\n".join(logs.output)
        self.assertIn("event=account_link.saved", output)
        self.assertIn("a***@example.com", output)
        self.assertNotIn("ana@example.com", output)
        self.assertNotIn("refresh-1", output)


if __name__ == "__main__":
    unittest.main()
