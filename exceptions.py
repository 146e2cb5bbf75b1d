# exceptions.py
# Trade rejections. None of these are fatal: GameState catches TradeError,
# turns it into an "error" notification and leaves all state untouched.


class TradeError(Exception):
    """Base class for every rejected command."""


class InvalidAmount(TradeError):
    pass


class UnknownAsset(TradeError):
    pass


class UnknownAction(TradeError):
    pass


class InsufficientFunds(TradeError):
    pass


class InsufficientHoldings(TradeError):
    pass


class NoActivePosition(TradeError):
    pass


class ShortAlreadyActive(TradeError):
    pass


class SessionInactive(TradeError):
    """Command issued before start_session() or after the game ended."""
