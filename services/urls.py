"""URL helpers for redirect targets."""

from yarl import URL


class AbsoluteUrlResolver:
    """Resolves relative paths against the service's public base URL."""

    def __init__(self, base_url: str):
        self.base_url = URL(base_url)
        if not self.base_url.is_absolute():
            raise ValueError(f"Base URL must be absolute: {base_url}")

    def resolve(self, path: str) -> str:
        """Return ``path`` as an absolute URL; absolute input is kept."""
        url = URL(path)
        if url.is_absolute():
            return str(url)
        return str(self.base_url.join(url))
