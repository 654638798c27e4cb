"""
Unit tests for the provider registry and fallback chain builder
"""

import unittest
from unittest.mock import Mock

from stt_services.core.exceptions import ConfigurationError
from stt_services.transcription.registry import ProviderRegistry, build_fallback_chain


def named(name):
    provider = Mock()
    provider.name = name
    return provider


class TestProviderRegistry(unittest.TestCase):

    def test_lookup_by_name(self):
        groq = named("GroqWhisper")
        registry = ProviderRegistry([groq, named("WhisperCpp")])

        self.assertIs(registry["GroqWhisper"], groq)
        self.assertIn("WhisperCpp", registry)
        self.assertNotIn("OpenAIWhisper", registry)
        self.assertEqual(len(registry), 2)
        self.assertEqual(registry.names, ["GroqWhisper", "WhisperCpp"])

    def test_duplicate_names_rejected(self):
        with self.assertRaises(ConfigurationError):
            ProviderRegistry([named("GroqWhisper"), named("GroqWhisper")])


class TestBuildFallbackChain(unittest.TestCase):
    """Chain order, deduplication and unknown names"""

    ORDER = ["GroqWhisper", "WhisperCpp", "OpenAIWhisper"]

    def setUp(self):
        self.registry = ProviderRegistry(
            [named("GroqWhisper"), named("WhisperCpp"), named("OpenAIWhisper")]
        )

    def names(self, chain):
        return [provider.name for provider in chain]

    def test_preferred_first_then_configured_order(self):
        chain = build_fallback_chain("OpenAIWhisper", self.ORDER, self.registry)

        self.assertEqual(self.names(chain), ["OpenAIWhisper", "GroqWhisper", "WhisperCpp"])

    def test_no_duplicates_when_preferred_in_order(self):
        chain = build_fallback_chain("WhisperCpp", self.ORDER + ["WhisperCpp"], self.registry)

        self.assertEqual(self.names(chain), ["WhisperCpp", "GroqWhisper", "OpenAIWhisper"])

    def test_unregistered_names_skipped(self):
        chain = build_fallback_chain("Missing", ["Nope"] + self.ORDER, self.registry)

        self.assertEqual(self.names(chain), self.ORDER)

    def test_no_preference(self):
        chain = build_fallback_chain(None, self.ORDER, self.registry)

        self.assertEqual(self.names(chain), self.ORDER)

    def test_building_twice_gives_same_chain(self):
        first = build_fallback_chain("WhisperCpp", self.ORDER, self.registry)
        second = build_fallback_chain("WhisperCpp", self.ORDER, self.registry)

        self.assertEqual(first, second)

    def test_empty_registry(self):
        self.assertEqual(build_fallback_chain("GroqWhisper", self.ORDER, ProviderRegistry()), [])


if __name__ == "__main__":
    unittest.main()
