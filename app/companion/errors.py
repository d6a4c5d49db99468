"""
Error taxonomy shared by stores, services and transports.

- InvalidInput: caller's fault (empty message/audio). Surfaced as a rejected request.
- CollaboratorUnavailable: transcription/generation/synthesis failed or timed out.
  Always masked by the controller with a fallback.
- StorageFailure: persistence read/write failed. Propagates.
"""


class InvalidInput(ValueError):
    pass


class CollaboratorUnavailable(RuntimeError):
    pass


class StorageFailure(RuntimeError):
    pass
