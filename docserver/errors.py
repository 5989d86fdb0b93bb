class DocserverError(Exception):
    """Startup failure reported to the operator before exiting."""


class DirectoryNotFound(DocserverError):
    def __init__(self, path):
        super().__init__(f"Directory not found at '{path}'")
        self.path = path


class BindError(DocserverError):
    """The listener could not bind for a reason other than the port being taken."""
