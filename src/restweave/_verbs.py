from typing import Any, Mapping, Optional, Union

from ._utils import run_sync
from ._utils._url_builder import has_placeholder
from .models import Method, RestRequest, RestResponse

RequestOrResource = Union[RestRequest, str]


class VerbsMixin:
    """Per-verb shortcuts of `RestClient`.

    `execute_<verb>` set the method and return the full response.
    `get`, `post`, `put`, `patch` and `delete` return the response when no
    response type is given, and the deserialized data otherwise, raising when
    the response is not successful.
    """

    def _as_request(
        self, request_or_resource: RequestOrResource, method: Method
    ) -> RestRequest:
        if isinstance(request_or_resource, RestRequest):
            request_or_resource.method = method
            return request_or_resource
        return RestRequest(request_or_resource, method)

    async def _execute_verb_async(
        self,
        request_or_resource: RequestOrResource,
        method: Method,
        response_type: Any = None,
    ) -> RestResponse[Any]:
        request = self._as_request(request_or_resource, method)
        return await self.execute_async(request, response_type)  # type: ignore[attr-defined]

    async def _request_data_async(
        self,
        request: RestRequest,
        response_type: Any = None,
    ) -> Any:
        if response_type is None:
            return await self.execute_async(request)  # type: ignore[attr-defined]
        response = await self.execute_async(request, response_type)  # type: ignore[attr-defined]
        return response.throw_if_error().data

    # execute_<verb>

    async def execute_get_async(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return await self._execute_verb_async(request, Method.GET, response_type)

    def execute_get(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return run_sync(self.execute_get_async(request, response_type))

    async def execute_post_async(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return await self._execute_verb_async(request, Method.POST, response_type)

    def execute_post(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return run_sync(self.execute_post_async(request, response_type))

    async def execute_put_async(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return await self._execute_verb_async(request, Method.PUT, response_type)

    def execute_put(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return run_sync(self.execute_put_async(request, response_type))

    async def execute_patch_async(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return await self._execute_verb_async(request, Method.PATCH, response_type)

    def execute_patch(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return run_sync(self.execute_patch_async(request, response_type))

    async def execute_delete_async(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return await self._execute_verb_async(request, Method.DELETE, response_type)

    def execute_delete(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return run_sync(self.execute_delete_async(request, response_type))

    async def execute_head_async(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return await self._execute_verb_async(request, Method.HEAD, response_type)

    def execute_head(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return run_sync(self.execute_head_async(request, response_type))

    async def execute_options_async(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return await self._execute_verb_async(request, Method.OPTIONS, response_type)

    def execute_options(
        self, request: RequestOrResource, response_type: Any = None
    ) -> RestResponse[Any]:
        return run_sync(self.execute_options_async(request, response_type))

    # typed shortcuts

    async def get_async(
        self,
        request: RequestOrResource,
        response_type: Any = None,
        *,
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Send a GET request.

        Args:
            request (Union[RestRequest, str]): Request or resource.
            response_type: Type of the returned data.
            parameters (Optional[Mapping[str, Any]]): Values for `{name}`
                placeholders of the resource; the remaining entries are sent
                as query parameters.

        Returns:
            The response when `response_type` is None, the data otherwise.

        Raises:
            Exception: When typed and the response is not successful.

        Examples:
            ```python
            orders = await client.get_async(
                "customers/{id}/orders",
                list[Order],
                parameters={"id": 7, "status": "open"},
            )
            ```
        """
        request = self._as_request(request, Method.GET)
        for name, value in (parameters or {}).items():
            if has_placeholder(request.resource, name):
                request.add_url_segment(name, value)
            else:
                request.add_query_parameter(name, value)
        return await self._request_data_async(request, response_type)

    def get(
        self,
        request: RequestOrResource,
        response_type: Any = None,
        *,
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        return run_sync(self.get_async(request, response_type, parameters=parameters))

    async def post_async(
        self, request: RequestOrResource, response_type: Any = None
    ) -> Any:
        return await self._request_data_async(
            self._as_request(request, Method.POST), response_type
        )

    def post(self, request: RequestOrResource, response_type: Any = None) -> Any:
        return run_sync(self.post_async(request, response_type))

    async def put_async(
        self, request: RequestOrResource, response_type: Any = None
    ) -> Any:
        return await self._request_data_async(
            self._as_request(request, Method.PUT), response_type
        )

    def put(self, request: RequestOrResource, response_type: Any = None) -> Any:
        return run_sync(self.put_async(request, response_type))

    async def patch_async(
        self, request: RequestOrResource, response_type: Any = None
    ) -> Any:
        return await self._request_data_async(
            self._as_request(request, Method.PATCH), response_type
        )

    def patch(self, request: RequestOrResource, response_type: Any = None) -> Any:
        return run_sync(self.patch_async(request, response_type))

    async def delete_async(
        self, request: RequestOrResource, response_type: Any = None
    ) -> Any:
        return await self._request_data_async(
            self._as_request(request, Method.DELETE), response_type
        )

    def delete(self, request: RequestOrResource, response_type: Any = None) -> Any:
        return run_sync(self.delete_async(request, response_type))

    # JSON bodies

    async def _send_json_async(
        self, method: Method, resource: str, body: Any, response_type: Any
    ) -> Any:
        request = RestRequest(resource, method).add_json_body(body)
        if response_type is None:
            response = await self.execute_async(request)  # type: ignore[attr-defined]
            return response.throw_if_error().status_code
        return await self._request_data_async(request, response_type)

    async def post_json_async(
        self, resource: str, body: Any, response_type: Any = None
    ) -> Any:
        """POST an object as JSON.

        Returns:
            The deserialized response when `response_type` is given, the status
            code otherwise.
        """
        return await self._send_json_async(Method.POST, resource, body, response_type)

    def post_json(self, resource: str, body: Any, response_type: Any = None) -> Any:
        return run_sync(self.post_json_async(resource, body, response_type))

    async def put_json_async(
        self, resource: str, body: Any, response_type: Any = None
    ) -> Any:
        return await self._send_json_async(Method.PUT, resource, body, response_type)

    def put_json(self, resource: str, body: Any, response_type: Any = None) -> Any:
        return run_sync(self.put_json_async(resource, body, response_type))
