"""Plugin contract consumed by the aggregator"""

from typing import TYPE_CHECKING, Any, Awaitable, Mapping, Protocol, Sequence, Union

if TYPE_CHECKING:
    from tagdoc.core.compiler import Compiler
    from tagdoc.core.utils.files import File


PluginData = Mapping[str, Any]


class Plugin(Protocol):
    """Anything with `compile(files, compiler)`; sync or async.

    The returned mapping's top-level keys become keys of the composite document.
    """

    def compile(self, files: Sequence["File"], compiler: "Compiler") -> Union[PluginData, Awaitable[PluginData]]: ...
