class IntroBotError(Exception):
    """Base error. `user_message` is safe to show to the member who triggered it."""

    user_message: str = "⚠️ Something went wrong. Please try again."

    def __init__(self, user_message: str | None = None):
        if user_message:
            self.user_message = user_message
        super().__init__(self.user_message)


class IntroValidationError(IntroBotError):
    """Form input the member can correct."""


class ChannelNotConfiguredError(IntroBotError):
    user_message = "❌ Profile channel is not configured. Please ask an admin to run `/setup_intro_channel`."


class ChannelAccessError(IntroBotError):
    user_message = "❌ Could not access the profile channel. Please contact an admin to check bot permissions."


class PublishError(IntroBotError):
    user_message = "❌ Failed to post your profile. Please try again or contact an admin."


class NotProfileOwnerError(IntroBotError):
    user_message = "❌ You can only manage your own introduction."
