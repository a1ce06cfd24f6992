"""Association of illustrated scenes with nearby script dialogue."""

import logging
from typing import Optional

from ..models import (
    Action,
    DialogueAssociation,
    DialogueBlock,
    DialogueLine,
    SceneHeading,
    Script,
)

logger = logging.getLogger(__name__)


def _match_at(script: Script, index: int) -> Optional[DialogueAssociation]:
    element = script.scene_elements[index]
    if isinstance(element, DialogueBlock):
        spoken = element.first_dialogue()
        if spoken:
            return DialogueAssociation(
                character=element.character.upper(),
                text=spoken,
                source_element_index=index,
            )
    return None


def find_dialogue_for_scene(scene_index: int, script: Script) -> Optional[DialogueAssociation]:
    """Find the dialogue nearest to an action element.

    Scans forward to the next scene heading first, since action lines
    usually precede the dialogue they accompany, then backward to the
    previous heading.

    Raises:
        ValueError: If ``scene_index`` does not point at an action element.
    """
    elements = script.scene_elements
    if not 0 <= scene_index < len(elements) or not isinstance(elements[scene_index], Action):
        raise ValueError(f"Scene index {scene_index} is not an action element")

    for step, stop in ((1, len(elements)), (-1, -1)):
        for index in range(scene_index + step, stop, step):
            if isinstance(elements[index], SceneHeading):
                break
            match = _match_at(script, index)
            if match:
                return match
    return None


class DialogueTracker:
    """Tracks which dialogue blocks were already used during one run."""

    def __init__(self) -> None:
        self._uses: dict[int, int] = {}

    def track(self, association: DialogueAssociation, scene_index: Optional[int] = None) -> DialogueLine:
        """Turn an association into a line, flagging reuse of its source block."""
        source = association.source_element_index
        previous_uses = self._uses.get(source, 0)
        self._uses[source] = previous_uses + 1

        if previous_uses:
            logger.debug(f"Dialogue block {source} reused ({previous_uses} earlier use(s))")

        return DialogueLine(
            character=association.character,
            text=association.text,
            source_element_index=source,
            scene_index=scene_index,
            is_duplicate=previous_uses > 0,
            duplicate_count=previous_uses,
        )

    def __contains__(self, source_element_index: object) -> bool:
        return source_element_index in self._uses
