"""Tab classification of search requests.

The tabbed search UI marks which tab issued a request through facet
parameters. Analytics records and suggestion metadata carry the result.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from search_proxy.core.constants import (
    TAB_LABEL_PROGRAMS,
    TAB_LABEL_STAFF,
    TAB_PARAM_PROGRAMS,
    TAB_PARAM_STAFF,
)


@dataclass(frozen=True)
class TabFacts:
    is_program_tab: bool = False
    is_staff_tab: bool = False
    tabs: list[str] = field(default_factory=list)


def classify_tabs(params: Mapping[str, Any]) -> TabFacts:
    """Derive tab flags from the request's facet parameters.

    Example:
        >>> classify_tabs({"f.Tabs|programMain": "Programs"}).tabs
        ['program-main']
    """
    is_program_tab = bool(params.get(TAB_PARAM_PROGRAMS))
    is_staff_tab = bool(params.get(TAB_PARAM_STAFF))
    tabs: list[str] = []
    if is_program_tab:
        tabs.append(TAB_LABEL_PROGRAMS)
    if is_staff_tab:
        tabs.append(TAB_LABEL_STAFF)
    return TabFacts(is_program_tab=is_program_tab, is_staff_tab=is_staff_tab, tabs=tabs)
