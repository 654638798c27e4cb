"""
Unit tests for encryption, API key management, auth and rate limiting
"""

import asyncio
import os
import unittest
from datetime import timedelta
from unittest.mock import patch

from cryptography.fernet import Fernet

from stt_services.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    StorageError,
    ValidationError,
)
from stt_services.security import (
    ApiKeyManager,
    EncryptionService,
    JWTAuth,
    RateLimiter,
    derive_fernet_key,
)
from stt_services.storage.memory import InMemoryCredentialStore


class TestEncryptionService(unittest.TestCase):

    def test_round_trip(self):
        cipher = EncryptionService("passphrase")

        token = cipher.encrypt("sk-secret")

        self.assertNotIn("sk-secret", token)
        self.assertEqual(cipher.decrypt(token), "sk-secret")

    def test_key_is_valid_fernet_key(self):
        Fernet(derive_fernet_key("any passphrase at all"))

    def test_same_passphrase_decrypts_across_instances(self):
        token = EncryptionService("shared").encrypt("sk-secret")

        self.assertEqual(EncryptionService("shared").decrypt(token), "sk-secret")

    def test_wrong_passphrase(self):
        token = EncryptionService("one").encrypt("sk-secret")

        with self.assertRaises(StorageError):
            EncryptionService("two").decrypt(token)

    @patch.dict(os.environ, {}, clear=True)
    def test_missing_passphrase(self):
        with self.assertRaises(ConfigurationError):
            EncryptionService()

    @patch.dict(os.environ, {"ENCRYPTION_KEY": "from-env"})
    def test_passphrase_from_env(self):
        token = EncryptionService().encrypt("x")

        self.assertEqual(EncryptionService("from-env").decrypt(token), "x")


class TestApiKeyManager(unittest.TestCase):

    def setUp(self):
        self.store = InMemoryCredentialStore()
        self.cipher = EncryptionService("keys")
        self.manager = ApiKeyManager(self.store, self.cipher)

    def test_store_encrypts(self):
        asyncio.run(self.manager.store_key("user-1", "OpenAIWhisper", " sk-abc "))

        stored = asyncio.run(self.store.get("user-1", "OpenAIWhisper"))
        self.assertNotEqual(stored, "sk-abc")
        self.assertEqual(self.cipher.decrypt(stored), "sk-abc")

    def test_blank_values_rejected(self):
        with self.assertRaises(ValidationError):
            asyncio.run(self.manager.store_key("user-1", "OpenAIWhisper", "   "))
        with self.assertRaises(ValidationError):
            asyncio.run(self.manager.store_key("user-1", "", "sk-abc"))

    def test_list_and_delete(self):
        async def run_test():
            await self.manager.store_key("user-1", "OpenAIWhisper", "sk-abc")
            listed = await self.manager.list_providers("user-1")
            deleted = await self.manager.delete_key("user-1", "OpenAIWhisper")
            missing = await self.manager.delete_key("user-1", "OpenAIWhisper")
            return listed, deleted, missing

        self.assertEqual(asyncio.run(run_test()), (["OpenAIWhisper"], True, False))


class TestJWTAuth(unittest.TestCase):

    def setUp(self):
        self.auth = JWTAuth(secret_key="jwt-test-secret")

    def test_token_round_trip(self):
        token = self.auth.create_access_token("user-42")

        self.assertEqual(self.auth.get_user_id(token), "user-42")

    def test_expired_token(self):
        token = self.auth.create_access_token("user-42", expires_delta=timedelta(seconds=-5))

        with self.assertRaises(AuthenticationError):
            self.auth.verify_token(token)

    def test_wrong_secret(self):
        token = JWTAuth(secret_key="other-secret").create_access_token("user-42")

        with self.assertRaises(AuthenticationError):
            self.auth.verify_token(token)

    def test_garbage_token(self):
        with self.assertRaises(AuthenticationError):
            self.auth.verify_token("not.a.jwt")


class TestRateLimiter(unittest.TestCase):

    def test_limit_per_user(self):
        limiter = RateLimiter(requests_per_minute=2)

        self.assertTrue(limiter.check("user-1"))
        self.assertTrue(limiter.check("user-1"))
        self.assertFalse(limiter.check("user-1"))
        self.assertTrue(limiter.check("user-2"))

    def test_reset(self):
        limiter = RateLimiter(requests_per_minute=1)
        limiter.check("user-1")

        limiter.reset("user-1")

        self.assertEqual(limiter.remaining("user-1"), 1)
        self.assertTrue(limiter.check("user-1"))


if __name__ == "__main__":
    unittest.main()
