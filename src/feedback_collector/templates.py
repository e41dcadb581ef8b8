"""User-facing message texts for the feedback conversation."""

GREETING = "👋 Hello! Thanks for contacting us. May I know your name?"
FEEDBACK_RECEIVED = "Got it! Finally, please send your profile picture 📸."
NEED_TEXT = "Please send a text message."
NEED_MEDIA = "Please send an image for your profile picture 📸"
NEED_CHOICE = 'Please click one of the buttons or reply with "Yes" or "No".'
CHOOSE_OPTION = "Please choose one of the options:"
CONSENT_YES = "Great! Please send your profile picture 📸"
MEDIA_RECEIVED = "Thanks for the picture! Please share your feedback or review."

CONSENT_BUTTONS: tuple[tuple[str, str], ...] = (("yes", "Yes"), ("no", "No"))


def name_received(name: str) -> str:
    return f"Nice to meet you, {name}! Please share your feedback or review."


def consent_question(name: str) -> str:
    return f"Nice to meet you, {name}! Are you ready to share your profile picture?"


def consent_declined(name: str | None) -> str:
    who = f", {name}" if name else ""
    return f"No problem{who}! Please share your feedback or review."


def completed(name: str | None) -> str:
    return (
        f"✅ Thank you, {name or 'friend'}! "
        "Your feedback has been received successfully."
    )


def system_error(start_keyword: str) -> str:
    return (
        "Sorry, something went wrong. "
        f"Please try again by sending '{start_keyword}'."
    )
