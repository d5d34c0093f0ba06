import discord

from introbot.models.form import FormDescriptor
from introbot.models.message import Control
from introbot.shared.custom_ids import encode_action

BUTTON_STYLES = {
    "primary": discord.ButtonStyle.primary,
    "secondary": discord.ButtonStyle.secondary,
    "danger": discord.ButtonStyle.danger,
    "success": discord.ButtonStyle.success,
}

# Clicks are routed from on_interaction by custom_id, so views only need
# to live long enough to be rendered.
VIEW_TIMEOUT = 600


def build_view(controls: list[Control] | None, timeout: float | None = VIEW_TIMEOUT) -> discord.ui.View | None:
    if not controls:
        return None
    view = discord.ui.View(timeout=timeout)
    for control in controls:
        view.add_item(
            discord.ui.Button(
                label=control.label,
                emoji=control.emoji,
                style=BUTTON_STYLES[control.style],
                custom_id=encode_action(control.payload),
            )
        )
    return view


class IntroModal(discord.ui.Modal):
    """Discord rendering of a FormDescriptor. Submissions are read from the raw interaction."""

    def __init__(self, form: FormDescriptor):
        super().__init__(title=form.title, custom_id=form.custom_id, timeout=VIEW_TIMEOUT)
        for field in form.fields:
            self.add_item(
                discord.ui.TextInput(
                    label=field.label,
                    custom_id=field.custom_id,
                    style=discord.TextStyle.paragraph if field.style == "paragraph" else discord.TextStyle.short,
                    placeholder=field.placeholder,
                    default=field.value,
                    required=field.required,
                    min_length=field.min_length,
                    max_length=field.max_length,
                )
            )
