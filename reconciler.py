"""Turn a desired song list into the fewest primitive setlist calls.

The UI hands over the list it wants (from a drag, a keyboard move, an add
or remove button; the source does not matter) and the list the server last
confirmed. ``reconcile`` classifies the change:

* same songs, any order: one bulk reorder with the desired order;
* anything else: removals first, then additions, each addition inserted at
  its 1-based index in the desired list.

The second case only guarantees membership. When songs that stay were also
moved, the resulting order can differ from the desired one;
``ReconcilePlan.exact`` says whether it will, and callers that need the
exact order can follow up with a reorder.
"""

from dataclasses import dataclass, field
from typing import Any, Hashable, Sequence

from errors import ValidationError

REORDER = "reorder"
EDIT = "edit"


def song_identity(song: Any) -> Hashable:
    """Identity of a song given as a bare id, a dict with ``id``, or an object."""
    if isinstance(song, dict):
        return song["id"]
    if hasattr(song, "id"):
        return song.id
    return song


@dataclass(frozen=True)
class ReorderCommand:
    song_ids: tuple

    def __post_init__(self):
        object.__setattr__(self, "song_ids", tuple(self.song_ids))


@dataclass(frozen=True)
class RemoveCommand:
    song_id: Hashable


@dataclass(frozen=True)
class AddCommand:
    song_id: Hashable
    position: int
    song: Any = field(default=None, compare=False)


@dataclass
class ReconcilePlan:
    """Commands to run, in order, to move ``current`` towards ``desired``."""

    kind: str
    commands: list = field(default_factory=list)
    exact: bool = True

    @property
    def is_reorder_only(self) -> bool:
        return self.kind == REORDER

    @property
    def removals(self) -> list[RemoveCommand]:
        return [c for c in self.commands if isinstance(c, RemoveCommand)]

    @property
    def additions(self) -> list[AddCommand]:
        return [c for c in self.commands if isinstance(c, AddCommand)]


def _identities(songs: Sequence, label: str) -> list:
    ids = [song_identity(s) for s in songs]
    if len(set(ids)) != len(ids):
        raise ValidationError(f"{label} song list contains the same song twice")
    return ids


def simulate(current_ids: Sequence[Hashable], commands: Sequence) -> list:
    """Apply commands to a list of ids the way the store applies them."""
    result = list(current_ids)
    for command in commands:
        if isinstance(command, ReorderCommand):
            result = list(command.song_ids)
        elif isinstance(command, RemoveCommand):
            result.remove(command.song_id)
        elif isinstance(command, AddCommand):
            result.insert(command.position - 1, command.song_id)
    return result


def reconcile(current: Sequence, desired: Sequence) -> ReconcilePlan:
    """Classify ``desired`` against ``current`` and build the command list.

    Both lists may hold bare ids, dicts or objects with an ``id``.

    Raises:
        ValidationError: either list names the same song twice
    """
    current_ids = _identities(current, "Current")
    desired_ids = _identities(desired, "Desired")

    if len(current_ids) == len(desired_ids) and set(current_ids) == set(desired_ids):
        return ReconcilePlan(kind=REORDER, commands=[ReorderCommand(desired_ids)])

    desired_set = set(desired_ids)
    current_set = set(current_ids)
    commands: list = [RemoveCommand(sid) for sid in current_ids if sid not in desired_set]
    for index, song in enumerate(desired, start=1):
        sid = song_identity(song)
        if sid not in current_set:
            commands.append(AddCommand(sid, index, song))

    exact = simulate(current_ids, commands) == desired_ids
    return ReconcilePlan(kind=EDIT, commands=commands, exact=exact)
