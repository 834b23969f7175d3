"""Example operation: GET a URL and finish with its JSON object."""

from typing import TYPE_CHECKING, Any

from weboperations.exceptions import WebOperationsError
from weboperations.models import Result
from weboperations.operations.base import BaseOperation

if TYPE_CHECKING:
    from weboperations.client import WebOperations


class BasicGetOperation(BaseOperation):
    """GET `url_string` and finish with the response body as a dict."""

    def __init__(self, web: "WebOperations", url_string: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.web = web
        self.url_string = url_string

    def main(self) -> None:
        self.web.request_json(self.url_string, shape=dict, completion=self._on_response)

    def _on_response(self, result: Result[dict[str, Any]]) -> None:
        if result.error is not None:
            self.finish(error=result.error)
        elif result.value is None:
            self.finish(error=WebOperationsError("An error occurred"))
        else:
            self.finish(result.value)
