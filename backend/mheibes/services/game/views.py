from typing import Optional

from mheibes.models import Room, SECRET_PHASES


def sanitize_room(room: Room, viewer_id: Optional[str] = None) -> dict:
    """Project the room into what ``viewer_id`` is allowed to see.

    While the ring is hidden (select_ring through search) anyone outside
    the hiding team, including an anonymous viewer, gets no ring owner or
    hand, and hiding-team hands are reported closed unless they were
    opened by a probe. Hands opened by tak/jeeba are public. The hiding
    team sees the true state, and after resolution ``roundResult``
    reveals it to everyone.
    """
    view = room.to_dict()
    if room.phase not in SECRET_PHASES:
        return view

    viewer = room.players.get(viewer_id) if viewer_id else None
    if viewer is not None and viewer.team == room.hiding_team:
        return view

    view['ringOwner'] = None
    view['ringHand'] = None
    view['hands'] = {
        pid: {hand: ('open' if state == 'open' else 'closed') for hand, state in hands.items()}
        for pid, hands in view['hands'].items()
    }
    return view
