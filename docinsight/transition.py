"""Frame-to-frame tag transition detection."""

from __future__ import annotations


class Transition:
    """A change in the decoded tag between two consecutive frames."""

    def __init__(self, tag_id: str, previous: str) -> None:
        self.tag_id = tag_id
        self.previous = previous

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transition):
            return NotImplemented
        return (self.tag_id, self.previous) == (other.tag_id, other.previous)

    def __repr__(self) -> str:
        return f"Transition(tag_id={self.tag_id!r}, previous={self.previous!r})"


class TransitionDetector:
    """Edge detector over the per-frame decoded tag.

    Only the previous frame is remembered, so a tag that reappears after a
    different tag (or after an empty frame) is a new transition.  The empty
    string means "nothing in view" and compares like any other value.
    """

    def __init__(self) -> None:
        self._last = ""

    @property
    def last_tag(self) -> str:
        return self._last

    def observe(self, tag_id: str) -> Transition | None:
        """Feed one frame's tag; return a ``Transition`` if it changed."""
        previous = self._last
        self._last = tag_id
        if tag_id == previous:
            return None
        return Transition(tag_id=tag_id, previous=previous)
