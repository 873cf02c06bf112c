"""Groups: named sets of templates sharing default settings."""

from __future__ import annotations

from elephant.collection import Collection
from elephant.exceptions import NotFoundError
from elephant.models import RequestSettings
from elephant.template import Template


class Group:
    """A named set of :class:`~elephant.template.Template` objects.

    The group's settings sit between the registry defaults and each
    template's own settings in the merge order, and its ``endpoint`` is
    what ``{{inherit}}`` expands to.
    """

    def __init__(self, group_id: str, settings: RequestSettings) -> None:
        self.id = group_id
        self.settings = settings
        self.templates: Collection[Template] = Collection(f"group '{group_id}'")

    def get_template(self, template_id: str) -> Template:
        """Return the template called *template_id*.

        Raises:
            NotFoundError: If the group has no such template.
        """
        template = self.templates.find_by("id", template_id)
        if template is None:
            raise NotFoundError(
                f"Template '{template_id}' could not be found in group '{self.id}'"
            )
        return template

    def __repr__(self) -> str:
        return f"Group({self.id!r}, templates={self.templates.count()})"
