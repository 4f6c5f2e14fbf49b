"""Default prompts, themes and the slideshow plan tool schema."""

DEFAULT_THEMES: tuple[str, ...] = ("PMS", "Insomnia", "Anxiety")
DEFAULT_SLIDESHOWS_PER_THEME = 10
DEFAULT_FRAMES_PER_SLIDESHOW = 4

PLAN_TOOL_NAME = "create_slideshow_plan"

DEFAULT_ORDERING_PROMPT = (
    "Your role is to act as a creative director. Organize the provided images "
    "into slideshows.\n"
    "Each slideshow must have 4 images.\n"
    'The slideshows should be grouped by theme. The themes are: "PMS" (with a '
    "focus on mood swings for girls, which will inform the captions later), "
    '"insomnia", and "anxiety".\n'
    "All slideshows you design must match the aesthetic/vibe of their respective "
    "themes and flow together cohesively.\n"
    "Prioritize using a diverse range of images, but you can reuse images across "
    "different slideshows if necessary to meet the required number of slideshows "
    "per theme, ensuring they still fit the aesthetic and flow.\n"
    "Think very long and hard about the combinations. Once you have a plan, "
    "review it to ensure all slideshows flow well internally and within their "
    "theme.\n"
    "Your task is to create this plan by outputting the image IDs in the proper "
    "order/sequence you've assigned for each slideshow. You are not generating "
    "the actual slideshow video or captions.\n"
    "The output format will be a JSON structure as defined by the "
    f"'{PLAN_TOOL_NAME}' tool, which you will be instructed to use."
)

DEFAULT_CAPTION_PROMPT = (
    "You are a DTC copywriter. For each of the 4 frames write one overlay caption "
    "(max 8 words) following PAS: pain, twist, dream, CTA. Use research text for "
    "insight.\n"
    'Return JSON {"captions":["…","…","…","…"]} only.'
)

CAPTION_RETRY_SUFFIX = "\n\nReturn *only* valid JSON."

CAPTIONS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "captions": {
            "type": "array",
            "items": {"type": "string"},
        }
    },
    "required": ["captions"],
    "additionalProperties": False,
}


def plan_tool_schema(themes: list[str], frames_per_slideshow: int) -> dict[str, object]:
    """Return the function declaration for the slideshow plan tool."""
    return {
        "name": PLAN_TOOL_NAME,
        "description": "Create a plan for TikTok slideshows based on image folders",
        "parameters": {
            "type": "OBJECT",
            "properties": {
                "slideshows": {
                    "type": "ARRAY",
                    "description": "Array of slideshow objects organized by theme",
                    "items": {
                        "type": "OBJECT",
                        "properties": {
                            "theme": {
                                "type": "STRING",
                                "description": "Theme of the slideshow",
                                "enum": list(themes),
                            },
                            "images": {
                                "type": "ARRAY",
                                "description": (
                                    "Image IDs in sequence: face, faceless..., product"
                                ),
                                "items": {"type": "STRING", "description": "Image ID"},
                                "min_items": frames_per_slideshow,
                                "max_items": frames_per_slideshow,
                            },
                        },
                        "required": ["theme", "images"],
                    },
                }
            },
            "required": ["slideshows"],
        },
    }


def ordering_instructions(
    themes: list[str], slideshows_per_theme: int, frames_per_slideshow: int
) -> str:
    """Return the closing instructions of the ordering prompt."""
    theme_list = ", ".join(themes)
    total = len(themes) * slideshows_per_theme
    middle = max(frames_per_slideshow - 2, 0)
    return (
        f"\n{DEFAULT_ORDERING_PROMPT}\n\n"
        "Your primary task, as outlined in the creative brief above, is to "
        "generate a slideshow plan.\n"
        f"It is CRITICAL that you invoke the '{PLAN_TOOL_NAME}' tool to produce it.\n"
        'The top-level key MUST be "slideshows", an array of slideshow objects. '
        "Each slideshow object MUST contain:\n"
        f'a. "theme": one of {themes}.\n'
        f'b. "images": an array of exactly {frames_per_slideshow} image '
        "identifiers.\n\n"
        "The identifiers MUST be the EXACT File API Identifiers listed above "
        '(for example "files/abc123def456"). Do not use file names, paths or any '
        "other reference format.\n\n"
        f"Please generate {slideshows_per_theme} slideshows for each of the "
        f"specified themes: {theme_list}.\n"
        f"This means a total of {total} slideshows.\n"
        f"Each slideshow must contain exactly {frames_per_slideshow} images, in "
        f"this sequence: one face image (hook/pain), {middle} faceless image(s) "
        "(twist, dream outcome), and one product image (call-out).\n"
        "Before finalizing, check that every identifier exactly matches one "
        "provided above."
    )


def caption_prompt(system_prompt: str, research: str) -> str:
    """Return the user prompt for one caption request."""
    return (
        f"{system_prompt}\n\nEach frame is A–D.  Research:\n{research}\n"
        'Return JSON {"captions":[…]}'
    )


def defaults_payload() -> dict[str, object]:
    """Return the default settings a client can prefill its form with."""
    return {
        "ordering_prompt": DEFAULT_ORDERING_PROMPT,
        "caption_prompt": DEFAULT_CAPTION_PROMPT,
        "themes": list(DEFAULT_THEMES),
        "slideshows_per_theme": DEFAULT_SLIDESHOWS_PER_THEME,
        "frames_per_slideshow": DEFAULT_FRAMES_PER_SLIDESHOW,
    }
