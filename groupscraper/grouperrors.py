"""Exception types raised by the group scraper."""


class GroupScraperError(Exception):
    """Base class for scraper errors."""


class InputSourceError(GroupScraperError):
    """The URL list could not be read; nothing can be processed."""


class SessionStartError(GroupScraperError):
    """The browser session could not be created."""


class PageUnreachableError(GroupScraperError):
    """Navigation failed outright; the page cannot be analyzed."""
