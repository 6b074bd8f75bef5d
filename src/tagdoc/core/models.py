"""Data models shared by the compiler, the page store, and plugins"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class Tag(BaseModel):
    """A `@tag value` directive line lifted out of the prose."""
    tag: str
    value: str = ""


class HeadingTag(BaseModel):
    """An `@#`..`@######` directive; `route` is filled in once the nav tree is known."""
    tag: Literal["heading"] = "heading"
    level: int = Field(..., ge=1, le=6)
    value: str
    route: str = ""


ContentNode = Union[str, HeadingTag, Tag]


class Block(BaseModel):
    """Compiled form of one raw documentation block."""
    metadata: dict[str, Any] = Field(default_factory=dict)
    raw_body: str = ""
    contents: list[ContentNode] = Field(default_factory=list)


class Page(Block):
    """A rendered markdown page, addressable by its unique reference."""
    reference:   str
    route:       str
    source_path: str
    title:       str


class HeadingNode(BaseModel):
    """Navigation leaf for a `@##+` heading inside a page."""
    kind:  Literal["heading"] = "heading"
    route: str = ""
    level: int
    title: str


class PageNode(BaseModel):
    """Navigation node for a page; children keep the order they appear in the source."""
    kind:      Literal["page"] = "page"
    reference: str
    route:     str
    level:     int
    title:     str
    children:  list[Annotated[Union["PageNode", HeadingNode], Field(discriminator="kind")]] = Field(default_factory=list)


PageNode.model_rebuild()


def is_tag(node: ContentNode, name: str) -> bool:
    """True if node is a generic Tag named `name` (headings never match)."""
    return isinstance(node, Tag) and node.tag == name


def is_heading(node: Any) -> bool:
    return isinstance(node, HeadingTag)
