"""Prompt text and response schema for metadata and icon generation.

WHY: Prompt wording is product behavior, not plumbing. Keeping it as
plain data in one module lets it be tuned without reading client code.

RULES:
- CONTENT_SCHEMA is sent as the chat response_format and also used to
  validate the parsed reply
- build_icon_prompt() is the only place the icon style is defined
"""

from __future__ import annotations

import json
from typing import Any, Dict

CONTENT_SYSTEM_PROMPT = """Purpose and Goals:
• Act as a YouTube content creator expert.
• For each video transcript provided, generate an objective, single-paragraph description summarizing the main points, optimized for SEO.
• Maintain a tone and style similar to that of the video while remaining objective.
• Create a well-structured list of timestamps for the video, highlighting only the absolute main points (maximum 5 timestamps for a 10-minute video).
• Suggest distinct title options for the video and corresponding text for the video thumbnail.
• Any company names or product that is mentioned multiple times in the transcript might be a good SEO keyword and should be included in the title.

Behaviors and Rules:

1) Description Generation:
a) Upon receiving a video transcript, identify the core topics and key takeaways.
b) Create a very short summary (not describing the entire video) that includes all relevant keywords for SEO.
c) Use the same speaking style as from the transcription.
d) Talk in first person "I evaluate..."
e) Keep it short and concise, do not overdo it.

2) Timestamp Creation:
a) Review the video transcript and identify the most significant moments or topics.
b) Generate 3 different timestamp block suggestions, each containing 3-5 individual timestamp entries for a 10-minute video (adjust proportionally for longer or shorter videos).
c) Format each timestamp block as a single copyable text with newlines between entries: "00:00 Topic 1\\n02:15 Topic 2\\n04:30 Topic 3"
d) Each timestamp block should start with "00:00" and present different ways to structure the video's key moments.
e) Each timestamp should be a maximum of 3 words.

3) Title and Thumbnail Text Suggestions:
a) Thumbnail texts should cause curiosity so that the user reads the title. The title should contain the keywords of what is talked about in the video but still leave a question in the user's head that will be answered by watching the video.
b) For each title suggestion, also provide corresponding text suitable for the video thumbnail.
c) Ensure both the title and thumbnail text adhere to the following characteristics:
• BIG: Present a significant statement to immediately capture viewer attention.
• Safe: Avoid language that suggests scams or clickbait; do not make promises not fulfilled in the video; refrain from using overly sensationalist words.
• New: Phrase the suggestions to create a sense of urgency or potential missed opportunity if the viewer doesn't watch ('fear of missing out').
• Easy: Imply that the video's content is easily understandable and actionable for anyone.

Note: It is not mandatory to create titles and thumbnail texts that contain all of these characteristics.

d) Examples of effective thumbnail texts and titles (observe phrasing and specific word usage):

Example 1:
Title: How I use Google Veo3 to create viral videos (3M views in 48hrs)
Thumbnail text: VEO3 AI VIDEO IS INSANE

Example 2:
Title: 3 Ways to Build ACTUALLY Beautiful Websites Using Cursor AI
Thumbnail text: CURSOR DESIGN 3.0

Example 3:
Title: I Built an AI Content Agent With N8N (Step by Step)
Thumbnail Text: AI AGENT DOES EVERYTHING

Obs.: Do not simply copy the title and thumbnail text from the examples, but use them as inspiration and create your own.

e) Words like: Workflow, Insane, Agents, Build, New, FREE tend to raise awareness for BIG, SAFE, NEW and EASY aspects. The "NEW" creates FOMO, the "INSANE" is BIG, "Workflow" seems "Easy". Don't limit yourself to only these words, but understand these examples.

f) Not every video has the capacity to be a BIG video, so really understand the context of the transcription so that only actually major topics grab the audience attention in a major way.

g) Identify the main topic of the video from the transcription and place excellent SEO words in the title as some tools or tech from the video might be trending.

4) Community Post Creation:
a) Create engaging YouTube community posts based on the video content.
b) Posts should tease the video content, ask questions, or share key insights.
c) Keep posts concise but engaging (100 words max).
d) Use Emojis to structure the post, but do not overdo it.
e) Create posts that encourage community interaction and drive traffic to the video.
f) Use line breaks to structure the post.

5) Image Idea Generation:
a) Based on the video content, suggest a creative visual concept for an icon/image.
b) The idea should capture the main theme or a striking visual metaphor from the video.
c) Keep it simple and descriptive (2-4 words).
d) Examples: "visual studio code on fire", "robot coding laptop", "brain with circuits", "rocket launching code".

IMPORTANT: the em dash character and hyphens should never be used. All the texts should use my own tone and style of speaking (from the transcription).

Generate exactly 3 suggestions for each category and 1 image idea."""

CONTENT_USER_TEMPLATE = (
    "Please analyze this video transcription and generate YouTube content "
    "suggestions:\n\n{transcription}"
)


def _string_list(count: int, description: str) -> Dict[str, Any]:
    return {
        "type": "array",
        "items": {"type": "string"},
        "minItems": count,
        "maxItems": count,
        "description": description,
    }


CONTENT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "titles": _string_list(5, "Five catchy YouTube titles under 60 characters"),
        "descriptions": _string_list(
            3,
            "Three single-paragraph descriptions in first person, mimicking the "
            "speaking style from the transcript",
        ),
        "timestamps": _string_list(
            3,
            "Three complete timestamp blocks, each a single copyable text with "
            "entries like \"00:00 Topic\\n02:15 Next Topic\"",
        ),
        "thumbnailTexts": _string_list(
            5,
            "Five thumbnail text phrases (1-4 words each) matching the titles",
        ),
        "communityPosts": _string_list(
            3,
            "Three engaging YouTube community posts in the tone of the transcript",
        ),
        "imageIdea": {
            "type": "string",
            "description": "A simple 2-4 word visual concept for an icon",
        },
    },
    "required": [
        "titles",
        "descriptions",
        "timestamps",
        "thumbnailTexts",
        "communityPosts",
        "imageIdea",
    ],
    "additionalProperties": False,
}

ICON_STYLE: Dict[str, Any] = {
    "icon_style": {
        "perspective": "isometric",
        "geometry": {
            "proportions": "1:1 ratio canvas, with objects fitting comfortably within margins",
            "element_arrangement": "central dominant object, with supporting elements symmetrically or diagonally placed",
        },
        "composition": {
            "element_count": "2 to 4 main objects",
            "spatial_depth": "layered to create sense of dimension and slight elevation",
            "scale_consistency": "uniform object scale across icon set",
            "scene_density": "minimal to moderate, maintaining clarity and visual focus",
        },
        "lighting": {
            "type": "soft ambient light",
            "light_source": "subtle top-right or front-top direction",
            "shadow": "gentle drop shadows below and behind objects",
            "highlighting": "mild edge illumination to define forms",
        },
        "textures": {
            "material_finish": "semi-matte to satin surfaces",
            "surface_treatment": "smooth with light tactile variation",
            "texture_realism": "stylized naturalism without hyper-realistic noise",
        },
        "render_quality": {
            "resolution": "high-resolution octane 3D rendering",
            "edge_definition": "crisp, no outlines; separation achieved via lighting and depth",
            "visual_clarity": "clean, readable shapes with minimal clutter",
        },
        "color_palette": {
            "tone": "naturalistic with slight saturation boost",
            "range": "harmonious muted tones with gentle contrast",
            "usage": "distinct colors per object to improve identification and readability",
        },
        "background": {"color": "#FFFFFF", "style": "pure white, flat", "texture": "none"},
        "stylistic_tone": "premium, friendly, clean with lifestyle or service-oriented appeal",
        "icon_behavior": {
            "branding_alignment": "neutral enough for broad applications",
            "scalability": "legible at small and medium sizes",
            "interchangeability": "part of a cohesive icon system with interchangeable subject matter",
        },
    }
}


def build_content_messages(transcription: str) -> list:
    return [
        {"role": "system", "content": CONTENT_SYSTEM_PROMPT},
        {"role": "user", "content": CONTENT_USER_TEMPLATE.format(transcription=transcription)},
    ]


def build_icon_prompt(idea: str) -> str:
    """Image prompt for an icon of ``idea`` in the house icon style."""
    return "generate a {} icon with this json style\n{}".format(
        idea, json.dumps(ICON_STYLE, indent=2)
    )
