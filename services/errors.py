# services/errors.py


class ScannerError(Exception):
    """Base class for every error raised by the scanner backend."""


class ConfigurationError(ScannerError):
    """The Alpha Vantage API key is not configured."""


class ValidationError(ScannerError):
    """A request parameter is missing or invalid."""


class ProviderError(ScannerError):
    """Alpha Vantage returned an error, an unexpected payload, or could not be reached."""


class SymbolProcessingError(ScannerError):
    """
    Raised while processing a single symbol inside a scan.
    Always caught by the scanner and recorded against that symbol.
    """

    def __init__(self, symbol: str, message: str):
        super().__init__(message)
        self.symbol = symbol
        self.message = message
