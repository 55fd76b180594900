from __future__ import annotations

from domain.models import MapDocument

TAB_SPACE = "    "

MAP_BASE_HEADER = """#ifndef PRINCIPAL_MAP_BASE_H
#define PRINCIPAL_MAP_BASE_H

#include <stdint.h>

#define MAX_CONNECTIONS 8
typedef struct {
    uint16_t locate;
    uint32_t length;
} CONNECT;
typedef struct LOCATION {
    uint16_t id;
    CONNECT connect[MAX_CONNECTIONS];
} LOCATION;

#endif
"""


def render_c_initializer(document: MapDocument) -> str:
    """Render the map as a ``LOCATION`` array for the firmware build."""
    lines = ['#include "principal/map_base.h"', "", "LOCATION locations_info[] = {"]
    for node in document.nodes:
        lines.append(f"{TAB_SPACE}{{{node.id}, {{")
        for connection in node.connect:
            lines.append(f"{TAB_SPACE * 2}{{{connection.pos}, {connection.length}}},")
        lines.append(f"{TAB_SPACE}}}}},")
    lines.append("};")
    return "\n".join(lines) + "\n"
