from enum import StrEnum


class LowerCaseStrEnum(StrEnum):
    """A StrEnum whose auto() values are the lowercased member names.

    Machine states, platforms and provider types travel as lowercase strings
    (e.g. "macos", "image_installing"), so members declared as MACOS or
    IMAGE_INSTALLING serialize to those wire values.
    """

    @staticmethod
    def _generate_next_value_(
        name: str,
        start: int,
        count: int,
        last_values: list[str],
    ) -> str:
        return name.lower()
