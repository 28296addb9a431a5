from typing import Any


def success(**data: Any) -> dict[str, Any]:
    return {"status": "success", "data": data}
