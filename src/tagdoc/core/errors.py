"""Exception types raised while compiling documentation"""


class TagdocError(Exception):
    """Base class for all tagdoc failures."""


class MetadataError(TagdocError, ValueError):
    """Front matter could not be parsed into a mapping."""


class MissingPageError(TagdocError, KeyError):
    """A page reference (nav root, @page child, @include target) is not in the store."""

    def __init__(self, reference: str, message: str):
        super().__init__(message)
        self.reference = reference

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable
        return self.args[0]


class ReferenceCycleError(TagdocError):
    """`@include` or `@page` directives refer back to a page already being expanded."""

    def __init__(self, directive: str, chain: list[str]):
        super().__init__(f"Circular @{directive}: {' -> '.join(chain)}")
        self.chain = chain


class PluginError(TagdocError):
    """A plugin failed on a specific source file."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"Failed to compile {path}: {cause}")
        self.path = path
