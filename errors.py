class GatewayError(Exception):
    """Base class for failures talking to the game contract."""


class ReadError(GatewayError):
    """A view call failed (RPC down, bad response, unknown room)."""


class SubmissionError(GatewayError):
    """A write was rejected by the wallet, the RPC node or the contract itself."""


class GameRuleError(Exception):
    """Raised by the development chain when a call breaks a contract rule."""
