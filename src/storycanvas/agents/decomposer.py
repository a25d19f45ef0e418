"""Decomposition agent: split a story into scene descriptors."""

import json
import logging
from dataclasses import dataclass

from google.genai import types
from pydantic import ValidationError

from ..models import SceneDraft, ShotType
from .base import BaseAgent

logger = logging.getLogger(__name__)

DEFAULT_STYLE = (
    "Ultra-realistic cinematic 8k, shot on Arri Alexa 65, Panavision lenses, "
    "deep depth of field, meticulous production design."
)

CONTINUITY_INSTRUCTION = """\
You are a Visual Continuity Architect for high-budget cinema. Your goal is to eliminate "AI drift" by creating a rigid physical manifest for characters.

PHASE 1: CHARACTER GENOME (Internal logic)
For every character identified, you MUST define:
- FACIAL GEOMETRY: Specific nose shape (aquiline, button), jawline (rugged, soft), and eye set (hooded, deep-set).
- HAIR ARCHITECTURE: Not just "hair color", but texture (coarse, wispy), exact length, and specific styling (e.g., "three loose strands falling over the left eyebrow").
- WARDROBE ANCHORS: Exact garment materials (distressed leather, pleated silk), specific colors (burnt sienna, charcoal grey), and unique identifiers (a specific brass broach, a frayed collar, a distinct scar on the chin).

PHASE 2: ENVIRONMENTAL ANCHORS
- Define consistent lighting (e.g., "Golden hour 5600K color temperature") and atmosphere (e.g., "heavy dust motes in the air").

PHASE 3: PROMPT CONSTRUCTION
- Every 'main' shot prompt MUST begin with the Character Genome block.
- Example prompt start: "[Character Name]: [Facial Geometry] + [Hair Architecture] + [Wardrobe Anchors]... [Action]... [Style]".
- This ensures the diffusion model "sees" the identity before the action.

STYLE GUIDELINE:
{style_clause}

OUTPUT: Return a JSON array of scenes. Do not use generic descriptions like "a man" or "the hero". Use the Genome defined in Phase 1.
"""

SCENES_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "text": types.Schema(
                type=types.Type.STRING,
                description="The specific snippet from the original story.",
            ),
            "prompt": types.Schema(
                type=types.Type.STRING,
                description=(
                    "The hyper-consistent image prompt starting with the "
                    "character genome and wardrobe anchors."
                ),
            ),
            "motionPrompt": types.Schema(
                type=types.Type.STRING,
                description="Camera movement instructions (e.g., 'Slow orbital pan', 'Rack focus').",
            ),
            "shotType": types.Schema(
                type=types.Type.STRING,
                enum=[kind.value for kind in ShotType],
            ),
        },
        required=["text", "prompt", "motionPrompt", "shotType"],
    ),
)


@dataclass
class DecomposeInput:
    """Input data for the decomposition agent."""

    story: str
    style: str = ""


def style_clause(style: str) -> str:
    style = style.strip()
    if style:
        return f"Adhere strictly to: {style}."
    return DEFAULT_STYLE


def strip_code_fences(response: str) -> str:
    """Remove markdown code-fence markers wrapping a JSON payload."""
    return response.replace("```json", "").replace("```", "").strip()


class StoryDecomposer(BaseAgent[DecomposeInput, list[SceneDraft]]):
    """Agent that turns a story into ordered scene descriptors.

    Each descriptor carries the story excerpt, a character-anchored image
    prompt, a camera-motion direction and a shot type.
    """

    @property
    def name(self) -> str:
        """Return the agent's name."""
        return "StoryDecomposer"

    def system_prompt(self, input_data: DecomposeInput) -> str:
        return CONTINUITY_INSTRUCTION.format(style_clause=style_clause(input_data.style))

    async def run(self, input_data: DecomposeInput) -> list[SceneDraft]:
        """Decompose the story into scene drafts.

        Args:
            input_data: Story text and optional style directive.

        Returns:
            Scene drafts in the order the model emitted them.

        Raises:
            ValueError: If the response is not a JSON array of valid scenes.
        """
        self._logger.info(f"Decomposing story ({len(input_data.story)} chars)")

        response = await self._create_message(
            prompt=input_data.story,
            input_data=input_data,
            response_schema=SCENES_SCHEMA,
        )

        drafts = self.parse_response(response)
        self._logger.info(f"Decomposed story into {len(drafts)} scenes")
        return drafts

    def parse_response(self, response: str) -> list[SceneDraft]:
        """Parse the model's response into validated scene drafts.

        Args:
            response: Raw response text, possibly fenced.

        Returns:
            List of SceneDraft objects ([] for an empty response).

        Raises:
            ValueError: If the response is not valid JSON or an item fails the schema.
        """
        json_str = strip_code_fences(response)
        if not json_str:
            return []

        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            self._logger.error(f"Failed to parse JSON: {e}")
            self._logger.debug(f"Raw response: {response}")
            raise ValueError(f"Invalid JSON in response: {e}")

        # Handle different response formats
        scenes_data = data.get("scenes", data) if isinstance(data, dict) else data

        if not isinstance(scenes_data, list):
            raise ValueError("Response does not contain a scenes array")

        drafts: list[SceneDraft] = []
        for i, scene_data in enumerate(scenes_data):
            try:
                drafts.append(SceneDraft.model_validate(scene_data))
            except ValidationError as e:
                self._logger.error(f"Scene {i + 1} does not match the scene schema: {e}")
                raise ValueError(f"Invalid scene at index {i}: {e}")

        return drafts
