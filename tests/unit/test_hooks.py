"""
Unit tests for hook configuration and callback protocols.
"""

from dutch_auction.core.auction import NO_HOOK, HookAdapter, HookConfig, Taker


class RecordingHook:
    def __init__(self):
        self.calls = []

    def kickable(self, from_token):
        return 1

    def auction_kicked(self, from_token):
        return 1

    def pre_take(self, from_token, amount_to_take, amount_needed):
        self.calls.append("pre_take")

    def post_take(self, to_token, amount_taken, amount_needed):
        self.calls.append("post_take")


class TestHookConfig:
    """Tests for callback gating."""

    def test_no_hook(self):
        assert not NO_HOOK.wants("pre_take")

    def test_flags_without_hook(self):
        """A flag alone does nothing without an adapter."""
        assert not HookConfig(pre_take=True).wants("pre_take")

    def test_hook_without_flags(self):
        cfg = HookConfig(hook=RecordingHook())
        assert not cfg.wants("kick")

    def test_selected_flags(self):
        cfg = HookConfig(hook=RecordingHook(), kick=True, post_take=True)
        assert cfg.wants("kick")
        assert cfg.wants("post_take")
        assert not cfg.wants("kickable")
        assert not cfg.wants("pre_take")

    def test_all(self):
        cfg = HookConfig.all(RecordingHook())
        assert all(cfg.wants(name) for name in ("kickable", "kick", "pre_take", "post_take"))


class TestProtocols:
    """Tests for structural typing."""

    def test_hook_protocol(self):
        assert isinstance(RecordingHook(), HookAdapter)

    def test_taker_protocol(self):
        class Buyer:
            def auction_take_callback(self, from_token, sender, amount_taken, amount_needed, data):
                pass

        assert isinstance(Buyer(), Taker)
        assert not isinstance(RecordingHook(), Taker)
