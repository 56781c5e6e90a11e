"""Templated chat replies keyed by emotion, plus user-facing error texts."""

from __future__ import annotations

from typing import Protocol

from .contracts import EmotionLabel, ErrorKind

GREETING = (
    "Hello! I'm your emotional wellness companion. Share what's on your mind, "
    "and I'll help you understand your emotions better."
)

RESPONSES: dict[EmotionLabel, tuple[str, ...]] = {
    EmotionLabel.JOY: (
        "I can sense your happiness! That's wonderful. What's bringing you such joy today?",
        "Your positive energy is contagious! It sounds like you're having a great time.",
        "I love hearing about moments of joy. Would you like some recommendations to keep this feeling going?",
    ),
    EmotionLabel.LOVE: (
        "There's so much warmth in your message. Love is a beautiful emotion to experience.",
        "I can feel the affection in your words. Love in all its forms is truly special.",
        "Your heart seems full right now. That's a precious feeling to cherish.",
    ),
    EmotionLabel.SADNESS: (
        "I hear that you're going through a difficult time. It's okay to feel sad - your emotions are valid.",
        "Sometimes sadness helps us process important experiences. I'm here to listen.",
        "Thank you for sharing something so personal. Would you like to talk more about what you're feeling?",
    ),
    EmotionLabel.ANGER: (
        "I can sense some frustration in your words. Anger often signals that something important to you has been affected.",
        "It sounds like you're dealing with something challenging. Your feelings are completely understandable.",
        "Sometimes anger is a sign that we need to set boundaries or make changes. What do you think might help?",
    ),
    EmotionLabel.FEAR: (
        "I notice some worry or concern in your message. It takes courage to share when we're feeling afraid.",
        "Fear can be overwhelming, but you're not alone. What's been on your mind lately?",
        "It's natural to feel uncertain sometimes. Would it help to talk through what's worrying you?",
    ),
    EmotionLabel.SURPRISE: (
        "Something unexpected seems to have happened! I'd love to hear more about it.",
        "Life has a way of surprising us, doesn't it? How are you processing this new development?",
        "Surprises can bring such interesting emotions. What's been the most surprising part?",
    ),
    EmotionLabel.NEUTRAL: (
        "Thanks for sharing that with me. How has the rest of your day been?",
        "I'm here and listening. Tell me a bit more about what's on your mind.",
        "It sounds like a fairly steady moment. Is there anything you'd like to explore together?",
    ),
}

APOLOGIES: dict[ErrorKind, str] = {
    ErrorKind.EMPTY_INPUT: "Please enter some text so I can understand how you feel.",
    ErrorKind.TOO_LONG: "That message is a bit long for me. Could you shorten it to 3000 characters or fewer?",
    ErrorKind.TIMEOUT: "The service is busy right now. Please try again in a moment.",
    ErrorKind.NETWORK_UNAVAILABLE: "I can't reach the server. Please check your connection and try again.",
    ErrorKind.UNAUTHORIZED: "Your session has expired. Please sign in again.",
    ErrorKind.RATE_LIMITED: "You're sending messages a little fast. Please slow down and try again shortly.",
    ErrorKind.MODEL_WARMING_UP: "I'm still starting up. Please try again in a few seconds.",
}

GENERIC_APOLOGY = "Sorry, I couldn't process your message just now. Please try again later."


class RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...


def select_response(emotion: EmotionLabel | str, rng: RandomSource) -> str:
    """Pick one candidate reply for *emotion*; unknown labels use the joy set."""
    try:
        key = EmotionLabel(emotion)
    except ValueError:
        key = EmotionLabel.JOY
    candidates = RESPONSES.get(key) or RESPONSES[EmotionLabel.JOY]
    return candidates[rng.randrange(len(candidates))]


def apology_for(kind: ErrorKind) -> str:
    return APOLOGIES.get(kind, GENERIC_APOLOGY)
