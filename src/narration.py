"""Prose about members and their relationships from an external text model."""

import logging

import httpx

from kinship import relationship_label
from models import FEMALE, MALE, Person

logger = logging.getLogger("clanscroll.narration")

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class NarrationError(Exception):
    """Text generation failed or returned nothing usable."""


def _json_body(response: httpx.Response):
    try:
        return response.json()
    except ValueError as e:
        raise NarrationError(f"Text model returned a non-JSON body: {response.text[:200]!r}") from e


class TextGenerator:
    """
    Minimal client for a hosted text model.

    With `base_url` set it talks to an OpenAI-compatible `/chat/completions`
    endpoint; otherwise it calls the Gemini `generateContent` REST API.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None = None,
        model: str = "gemini-2.0-flash",
        timeout: float = 60.0,
        client: httpx.Client | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/") if base_url else None
        self.model = model
        self.client = client or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(cls, settings) -> "TextGenerator":
        return cls(settings.API_KEY, settings.AI_BASE_URL, settings.AI_MODEL, settings.AI_TIMEOUT)

    def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise NarrationError("No API key configured for text generation")

        try:
            if self.base_url:
                text = self._chat_completion(prompt)
            else:
                text = self._gemini(prompt)
        except httpx.HTTPError as e:
            logger.error(f"Text generation request failed: {e}")
            raise NarrationError(str(e)) from e

        if not text:
            raise NarrationError("Text model returned an empty answer")
        return text

    def _chat_completion(self, prompt: str) -> str | None:
        logger.debug(f"Requesting chat completion from {self.base_url} ({self.model})")
        response = self.client.post(
            f"{self.base_url}/chat/completions",
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.7,
            },
        )
        response.raise_for_status()
        data = _json_body(response)
        try:
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise NarrationError(f"Unexpected chat completion payload: {data!r}") from e

    def _gemini(self, prompt: str) -> str | None:
        logger.debug(f"Requesting Gemini completion ({self.model})")
        response = self.client.post(
            GEMINI_URL.format(model=self.model),
            params={"key": self.api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
        )
        response.raise_for_status()
        data = _json_body(response)
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            raise NarrationError(f"Unexpected Gemini payload: {data!r}") from e
        if not isinstance(parts, list) or not all(isinstance(p, dict) for p in parts):
            raise NarrationError(f"Unexpected Gemini payload: {data!r}")
        return "".join(str(p.get("text") or "") for p in parts)


# ============================================================================
# Prompts
# ============================================================================

STYLE_INSTRUCTIONS = {
    "traditional": "Write in a dignified, classical register and use formal clan kinship terms.",
    "modern": "Write in plain modern language and explain the family connection clearly.",
}


def _gender_word(person: Person) -> str:
    if person.gender == MALE:
        return "male"
    if person.gender == FEMALE:
        return "female"
    return "unknown"


def family_context(members: list[Person]) -> str:
    """One line per member naming its parent, for grounding the model."""
    by_id = {m.id: m for m in members}
    lines = []
    for m in members:
        parent = by_id.get(m.parent_id) if m.parent_id else None
        lines.append(f"- {m.name} ({_gender_word(m)}), parent: {parent.name if parent else 'founding ancestor'}")
    return "\n".join(lines)


def relationship_prompt(a: Person, b: Person, members: list[Person], style: str = "traditional") -> str:
    computed = relationship_label(b, a, members)
    hint = f"The computed kinship term of {b.name} as seen from {a.name} is \"{computed}\".\n" if computed else ""
    return (
        "You are a genealogist versed in clan lineage records.\n"
        f"Family records:\n{family_context(members)}\n\n"
        f"Analyse the relationship between:\n1. {a.name}\n2. {b.name}\n"
        f"{hint}"
        "Give the formal kinship term, describe how their lines connect, and say "
        "politely if they are not related.\n"
        f"{STYLE_INSTRUCTIONS.get(style, STYLE_INSTRUCTIONS['traditional'])}"
    )


def biography_prompt(person: Person) -> str:
    return (
        "Write a short biographical sketch for a family record in the style of a local chronicle.\n"
        f"Name: {person.name}\n"
        f"Born: {person.birth_date or 'unknown'}\n"
        f"Residence: {person.address or 'unknown'}\n"
    )


def inquiry_prompt(person: Person, question: str, style: str = "traditional") -> str:
    return (
        f"You are the family historian. Someone asks about {person.name}:\n"
        f"\"{question}\"\n"
        f"Background: born {person.birth_date or 'unknown'}, living in {person.address or 'unknown'}.\n"
        f"{STYLE_INSTRUCTIONS.get(style, STYLE_INSTRUCTIONS['traditional'])}"
    )


def _narrate(generator: TextGenerator, prompt: str, empty: str, failed: str) -> str:
    try:
        return generator.generate(prompt) or empty
    except NarrationError as e:
        logger.error(f"Narration failed: {e}")
        return failed


def analyze_relationship(
    a: Person, b: Person, members: list[Person], generator: TextGenerator, style: str = "traditional"
) -> str:
    return _narrate(
        generator,
        relationship_prompt(a, b, members, style),
        empty="The records say nothing that links these two.",
        failed="The relationship analysis is unavailable right now, please try again later.",
    )


def generate_biography(person: Person, generator: TextGenerator) -> str:
    return _narrate(
        generator,
        biography_prompt(person),
        empty="Details of this life are still to be researched.",
        failed="The biography could not be written right now.",
    )


def ask_about_member(person: Person, question: str, generator: TextGenerator, style: str = "traditional") -> str:
    return _narrate(
        generator,
        inquiry_prompt(person, question, style),
        empty="The records hold no answer to this question.",
        failed="The family historian cannot answer right now.",
    )
