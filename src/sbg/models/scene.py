"""Script and scene element data models."""

from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field


class SceneHeading(BaseModel):
    """A slug line marking a scene boundary (e.g. 'INT. LAB - NIGHT')."""

    type: Literal["scene_heading"] = "scene_heading"
    content: str = Field(default="", description="Heading text")


class Action(BaseModel):
    """An action line. Only action lines are illustrated."""

    type: Literal["action"] = "action"
    content: str = Field(default="", description="Action description")


class Transition(BaseModel):
    """A transition such as 'CUT TO:'."""

    type: Literal["transition"] = "transition"
    content: str = Field(default="", description="Transition text")


class DialoguePart(BaseModel):
    """One part of a dialogue block."""

    type: Literal["parenthetical", "dialogue"] = Field(..., description="Part kind")
    content: str = Field(..., description="Part text")


class DialogueBlock(BaseModel):
    """A character's speech: ordered parentheticals and dialogue lines."""

    type: Literal["dialogue_block"] = "dialogue_block"
    character: str = Field(..., description="Name of the speaking character")
    elements: list[DialoguePart] = Field(default_factory=list, description="Dialogue parts")

    def first_dialogue(self) -> Optional[str]:
        """Return the content of the first spoken part, if any."""
        for part in self.elements:
            if part.type == "dialogue":
                return part.content or None
        return None


SceneElement = Annotated[
    Union[SceneHeading, Action, Transition, DialogueBlock],
    Field(discriminator="type"),
]


class Script(BaseModel):
    """A generated movie script.

    The position of an element in ``scene_elements`` is its scene index and
    is the identity every later stage refers to.
    """

    title: str = Field(..., description="Script title")
    source_file: Optional[str] = Field(None, description="Model that produced the script")
    scene_elements: list[SceneElement] = Field(default_factory=list, description="Ordered script elements")

    def action_scenes(self) -> list[tuple[int, Action]]:
        """Return (scene_index, action) pairs for every action with content."""
        return [
            (index, element)
            for index, element in enumerate(self.scene_elements)
            if isinstance(element, Action) and element.content
        ]

    def dialogue_characters(self) -> list[str]:
        """Return distinct speaking characters (uppercased) in script order."""
        names: list[str] = []
        for element in self.scene_elements:
            if isinstance(element, DialogueBlock):
                name = element.character.upper().strip()
                if name not in names:
                    names.append(name)
        return names

    def to_text(self) -> str:
        """Render the script as plain screenplay text."""
        text = f"Title: {self.title}\n\n"
        for element in self.scene_elements:
            if isinstance(element, DialogueBlock):
                text += f"\t{element.character.upper()}\n"
                for part in element.elements:
                    if part.type == "parenthetical":
                        text += f"\t({part.content})\n"
                    else:
                        text += f"\t{part.content}\n"
                text += "\n"
            else:
                text += f"{element.content}\n\n"
        return text
