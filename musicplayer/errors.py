class MusicPlayerError(RuntimeError):
    """Base error for musicplayer."""


class CredentialError(MusicPlayerError):
    """The client-credentials exchange did not yield an access token."""


class PermissionDeniedError(MusicPlayerError):
    """Reading the media library was refused."""


class CatalogLookupError(MusicPlayerError):
    """A catalog search failed or returned something unusable."""


class PersistenceError(MusicPlayerError):
    """Reading or writing the local store failed."""
