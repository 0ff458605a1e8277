"""
Derby Rounds - Capability Wrapper Tests
"""

from src.orchestrator.capability import Available, Unavailable, capability_of


class TestCapabilityOf:
    def test_available(self):
        handle = object()
        capability = capability_of(handle, "unused")
        assert isinstance(capability, Available)
        assert capability.handle is handle

    def test_unavailable(self):
        capability = capability_of(None, "ledger not configured")
        assert capability == Unavailable("ledger not configured")
