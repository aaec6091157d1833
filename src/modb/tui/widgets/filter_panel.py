"""Filter dropdowns for the active browse resource.

The panel is rebuilt whenever the active tab changes: one Select per
filter the resource accepts (none for People). Changing a Select posts
FilterChanged with the full FilterSet.
"""

from __future__ import annotations

from textual.containers import Horizontal
from textual.widgets import Select, Static

from modb.catalog import Resource, format_option
from modb.models import FilterSet
from modb.tui.messages import FilterChanged
from modb.tui.telemetry import get_telemetry


class FilterSelect(Select):
    """Select bound to one filter of one resource."""

    def __init__(self, resource: Resource, filter_name: str, value: str) -> None:
        spec = resource.filter_spec(filter_name)
        super().__init__(
            [(format_option(option), option) for option in spec.options],
            value=value,
            allow_blank=False,
            prompt=spec.label,
            id=f"filter-{filter_name}",
        )
        self.resource_name = resource.name
        self.filter_name = filter_name


class FilterPanel(Horizontal):
    """Row of filter dropdowns plus the resource heading."""

    DEFAULT_CSS = """
    FilterPanel {
        height: auto;
        padding: 0 1;
        border-bottom: solid $primary;
        background: $surface;
    }
    FilterPanel .filter-title {
        width: auto;
        padding: 1 2 0 0;
        text-style: bold;
    }
    FilterPanel FilterSelect {
        width: 28;
    }
    """

    def __init__(self) -> None:
        super().__init__(id="filter-panel")
        self.resource: Resource | None = None

    async def show_resource(self, resource: Resource, filters: FilterSet) -> None:
        """Replace the dropdowns with those of ``resource``."""
        self.resource = resource
        await self.remove_children()
        widgets = [Static(resource.label, classes="filter-title")]
        for spec in resource.filters:
            widgets.append(
                FilterSelect(resource, spec.name, filters.get(spec.name, spec.default))
            )
        await self.mount_all(widgets)

    def current_filters(self) -> FilterSet:
        if self.resource is None:
            return FilterSet()
        return FilterSet(
            (select.filter_name, str(select.value))
            for select in self.query(FilterSelect)
            if select.resource_name == self.resource.name
            and select.value is not Select.NULL
        )

    def on_select_changed(self, event: Select.Changed) -> None:
        event.stop()
        select = event.select
        if (
            self.resource is None
            or not isinstance(select, FilterSelect)
            or select.resource_name != self.resource.name
        ):
            return
        filters = self.current_filters()
        get_telemetry().log.info(
            f"filter changed resource={self.resource.name} "
            f"widget={select.id!r} filters={filters.to_filter_strings()}"
        )
        self.post_message(FilterChanged(self.resource.name, filters))
