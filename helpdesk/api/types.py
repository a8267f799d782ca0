from __future__ import annotations

from typing import Annotated

from pydantic import StringConstraints

# canonical 8-4-4-4-12 hex form, any version
UuidStr = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True,
        pattern=r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$",
    ),
]
