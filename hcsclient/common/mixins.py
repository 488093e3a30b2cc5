"""
Mixins for common functionality.
"""

from __future__ import annotations

from typing import Any


class Configurable:
    """
    Mixin class for handling configuration overrides.

    Classes using this mixin call apply_overrides to set tuning attributes
    from keyword overrides, falling back to the matching upper case
    attribute of a Config object.
    """

    def apply_overrides(
        self,
        overrides: dict[str, Any],
        config_obj: Any,
        attr_list: list[str] | None = None,
    ) -> None:
        """
        Apply overrides to the instance using the config object as defaults.

        Sets self.attr = overrides[attr] when given and not None, otherwise
        config_obj.ATTR, for each attr in attr_list.

        Args:
            overrides: Dictionary of override values
            config_obj: Configuration object with uppercase attribute names
            attr_list: List of attribute names to set
        """
        for attr in attr_list or []:
            value = overrides.get(attr)
            if value is None:
                value = getattr(config_obj, attr.upper())
            setattr(self, attr, value)
