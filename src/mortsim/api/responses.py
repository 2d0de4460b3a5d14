from decimal import Decimal

import orjson
from mashumaro.mixins.dict import DataClassDictMixin
from starlette.responses import Response


def _default(obj: object) -> object:
    if isinstance(obj, Decimal):
        return f"{obj:.2f}"
    if isinstance(obj, DataClassDictMixin):
        return obj.to_dict()
    raise TypeError(f"Object of type {obj.__class__.__name__} is not JSON serializable")


class ORJSONResponse(Response):
    media_type = "application/json"

    def render(self, content: object) -> bytes:
        return orjson.dumps(content, default=_default, option=orjson.OPT_PASSTHROUGH_DATACLASS)


def errors_response(errors: list[str], status_code: int = 422) -> ORJSONResponse:
    return ORJSONResponse({"errors": errors}, status_code=status_code)
