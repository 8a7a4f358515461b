"""
Web tools - web_search (Tavily), http_request and fetch_url.

All three go through httpx; transient transport failures are retried with
tenacity. Results that are too large are offloaded by the step loop's
eviction like any other tool result.
"""

import json
import os
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, TYPE_CHECKING

import httpx
from bs4 import BeautifulSoup
from trafilatura import extract

from deepagent.config import settings
from deepagent.domain import (
    FetchUrlFinishEvent,
    FetchUrlStartEvent,
    HttpRequestFinishEvent,
    HttpRequestStartEvent,
    ToolResult,
    WebSearchFinishEvent,
    WebSearchStartEvent,
)
from deepagent.tools.base import BaseTool
from deepagent.utils.logging import get_logger
from deepagent.utils.retry import retry_async

if TYPE_CHECKING:
    from deepagent.runtime.context import ToolContext

logger = get_logger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
USER_AGENT = "Mozilla/5.0 (compatible; DeepAgent/1.0)"
HTTP_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]

HTTP_RETRYABLE = (httpx.TransportError,)


class _HttpTool(BaseTool):
    """Shared client handling: an injected client is reused and never closed."""

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float | None = None):
        self._client = client
        self.timeout = timeout or settings.http_timeout
        super().__init__()

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            yield client

    @retry_async(exceptions=HTTP_RETRYABLE)
    async def _send(self, client: httpx.AsyncClient, request: httpx.Request) -> httpx.Response:
        return await client.send(request)


class WebSearchTool(_HttpTool):
    def __init__(
        self,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self._api_key = api_key
        super().__init__(client=client, timeout=timeout)

    def get_name(self) -> str:
        return "web_search"

    def get_description(self) -> str:
        return (
            "Search the web for current information.\n\n"
            "Returns ranked results with title, URL and a content snippet. "
            "Use fetch_url to read a promising result in full and cite URLs you rely on."
        )

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query (be specific and detailed for best results)",
                },
                "max_results": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": 20,
                    "default": 5,
                    "description": "Number of results to return (1-20)",
                },
                "topic": {
                    "type": "string",
                    "enum": ["general", "news", "finance"],
                    "default": "general",
                    "description": "Search topic category",
                },
                "include_raw_content": {
                    "type": "boolean",
                    "default": False,
                    "description": "Include full page content (uses more tokens)",
                },
            },
            "required": ["query"],
        }

    def _resolve_api_key(self) -> str | None:
        if self._api_key:
            return self._api_key
        if settings.tavily_api_key:
            return settings.tavily_api_key.get_secret_value()
        return os.getenv("TAVILY_API_KEY")

    async def execute(self, parameters: dict[str, Any], context: "ToolContext") -> ToolResult:
        start_time = time.time()
        query = parameters.get("query")
        if not query:
            return self._create_error_result(parameters, "query is required", start_time)

        api_key = self._resolve_api_key()
        if not api_key:
            return self._create_error_result(
                parameters, "Web search error: no Tavily API key configured", start_time
            )

        await context.emit(WebSearchStartEvent(run_id=context.run_id, query=query))
        payload = {
            "query": query,
            "max_results": min(max(int(parameters.get("max_results") or 5), 1), 20),
            "topic": parameters.get("topic") or "general",
            "include_raw_content": bool(parameters.get("include_raw_content", False)),
        }

        try:
            async with self._http() as client:
                request = client.build_request(
                    "POST",
                    TAVILY_SEARCH_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {api_key}"},
                    timeout=self.timeout,
                )
                response = await self._send(client, request)
                response.raise_for_status()
                results = response.json().get("results") or []
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("web_search_failed", query=query, error=str(e))
            await context.emit(WebSearchFinishEvent(run_id=context.run_id, query=query, result_count=0))
            return self._create_error_result(parameters, f"Web search error: {e}", start_time)

        await context.emit(WebSearchFinishEvent(run_id=context.run_id, query=query, result_count=len(results)))
        return self._create_result(parameters, format_search_results(query, results), start_time, output=results)


def format_search_results(query: str, results: list[dict]) -> str:
    blocks = []
    for i, r in enumerate(results, start=1):
        score = r.get("score")
        block = (
            f"## Result {i}: {r.get('title', '')}\n"
            f"URL: {r.get('url', '')}\n"
            f"Score: {f'{score:.2f}' if isinstance(score, (int, float)) else 'N/A'}\n"
            f"Content: {r.get('content', '')}\n"
        )
        if r.get("raw_content"):
            block += f"Raw content: {r['raw_content']}\n"
        blocks.append(block)
    return f'Found {len(results)} results for query: "{query}"\n\n' + "\n---\n\n".join(blocks)


class HttpRequestTool(_HttpTool):
    def get_name(self) -> str:
        return "http_request"

    def get_description(self) -> str:
        return (
            "Make HTTP requests to APIs and web services.\n\n"
            "Supports GET, POST, PUT, DELETE, PATCH methods with custom headers, "
            "query parameters, and request bodies.\n\n"
            "Returns the status code and the response content (JSON or text)."
        )

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "Target URL (must be a valid HTTP/HTTPS URL)"},
                "method": {"type": "string", "enum": HTTP_METHODS, "default": "GET", "description": "HTTP method"},
                "headers": {
                    "type": "object",
                    "additionalProperties": {"type": "string"},
                    "description": "HTTP headers as key-value pairs",
                },
                "body": {
                    "anyOf": [{"type": "string"}, {"type": "object"}],
                    "description": "Request body (string or JSON object)",
                },
                "params": {
                    "type": "object",
                    "additionalProperties": {"type": "string"},
                    "description": "URL query parameters as key-value pairs",
                },
                "timeout": {"type": "number", "description": "Request timeout in seconds"},
            },
            "required": ["url"],
        }

    async def execute(self, parameters: dict[str, Any], context: "ToolContext") -> ToolResult:
        start_time = time.time()
        url = parameters.get("url")
        method = (parameters.get("method") or "GET").upper()
        if not url or not url.startswith(("http://", "https://")):
            return self._create_error_result(parameters, "url must be a valid HTTP/HTTPS URL", start_time)
        if method not in HTTP_METHODS:
            return self._create_error_result(parameters, f"Unsupported method: {method}", start_time)

        timeout = float(parameters.get("timeout") or self.timeout)
        body = parameters.get("body")
        request_kwargs: dict[str, Any] = {
            "headers": parameters.get("headers") or {},
            "params": parameters.get("params") or None,
            "timeout": timeout,
        }
        if isinstance(body, (dict, list)):
            request_kwargs["json"] = body
        elif body is not None:
            request_kwargs["content"] = str(body)

        await context.emit(HttpRequestStartEvent(run_id=context.run_id, url=url, method=method))
        try:
            async with self._http() as client:
                request = client.build_request(method, url, **request_kwargs)
                response = await self._send(client, request)
        except httpx.TimeoutException:
            await context.emit(HttpRequestFinishEvent(run_id=context.run_id, url=url, status_code=None))
            return self._create_error_result(parameters, f"Request timed out after {timeout:g} seconds", start_time)
        except httpx.HTTPError as e:
            await context.emit(HttpRequestFinishEvent(run_id=context.run_id, url=url, status_code=None))
            return self._create_error_result(parameters, f"HTTP request error: {e}", start_time)

        content = response.text
        if "application/json" in response.headers.get("content-type", ""):
            try:
                content = json.dumps(response.json(), indent=2, ensure_ascii=False)
            except ValueError:
                logger.debug("http_response_not_json", url=url)

        await context.emit(
            HttpRequestFinishEvent(run_id=context.run_id, url=str(response.url), status_code=response.status_code)
        )
        output = (
            f"HTTP {method} {url}\n"
            f"Status: {response.status_code}\n"
            f"Success: {str(response.is_success).lower()}\n"
            f"Content:\n{content}"
        )
        return self._create_result(parameters, output, start_time, output=response.status_code)


def html_to_text(html: str, url: str | None = None, extract_article: bool = True) -> str:
    """
    Main content of a page as markdown via trafilatura, falling back to the
    visible text of the whole document.
    """
    if extract_article:
        extracted = extract(
            html,
            url=url,
            output_format="markdown",
            include_links=True,
            include_tables=True,
            include_formatting=True,
        )
        if extracted:
            return extracted

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    lines = (line.strip() for line in soup.get_text("\n").splitlines())
    return "\n".join(line for line in lines if line)


class FetchUrlTool(_HttpTool):
    def get_name(self) -> str:
        return "fetch_url"

    def get_description(self) -> str:
        return (
            "Fetch a web page and return its main content as Markdown.\n\n"
            "- Use this tool to read documentation, articles, and web pages\n"
            "- Boilerplate (navigation, ads, scripts) is removed\n"
            "- Cite the URL when referencing fetched content"
        )

    def get_parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "The URL to fetch (must be a valid HTTP/HTTPS URL)"},
                "timeout": {"type": "number", "description": "Request timeout in seconds"},
                "extract_article": {
                    "type": "boolean",
                    "default": True,
                    "description": "Extract the main article content (disable for non-article pages)",
                },
            },
            "required": ["url"],
        }

    async def execute(self, parameters: dict[str, Any], context: "ToolContext") -> ToolResult:
        start_time = time.time()
        url = parameters.get("url")
        if not url or not url.startswith(("http://", "https://")):
            return self._create_error_result(parameters, "url must be a valid HTTP/HTTPS URL", start_time)
        timeout = float(parameters.get("timeout") or self.timeout)

        await context.emit(FetchUrlStartEvent(run_id=context.run_id, url=url))
        try:
            async with self._http() as client:
                request = client.build_request("GET", url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
                response = await self._send(client, request)
        except httpx.TimeoutException:
            await context.emit(FetchUrlFinishEvent(run_id=context.run_id, url=url, success=False))
            return self._create_error_result(parameters, f"Request timed out after {timeout:g} seconds", start_time)
        except httpx.HTTPError as e:
            await context.emit(FetchUrlFinishEvent(run_id=context.run_id, url=url, success=False))
            return self._create_error_result(parameters, f"Error fetching URL: {e}", start_time)

        if not response.is_success:
            await context.emit(FetchUrlFinishEvent(run_id=context.run_id, url=str(response.url), success=False))
            return self._create_error_result(
                parameters, f"HTTP error: {response.status_code} {response.reason_phrase}", start_time
            )

        markdown = html_to_text(response.text, url=str(response.url), extract_article=parameters.get("extract_article", True))
        await context.emit(FetchUrlFinishEvent(run_id=context.run_id, url=str(response.url), success=True))
        return self._create_result(parameters, markdown, start_time)


def create_web_tools(
    tavily_api_key: str | None = None,
    client: httpx.AsyncClient | None = None,
    timeout: float | None = None,
) -> list[BaseTool]:
    return [
        WebSearchTool(api_key=tavily_api_key, client=client, timeout=timeout),
        HttpRequestTool(client=client, timeout=timeout),
        FetchUrlTool(client=client, timeout=timeout),
    ]


__all__ = [
    "FetchUrlTool",
    "HttpRequestTool",
    "WebSearchTool",
    "create_web_tools",
    "format_search_results",
    "html_to_text",
]
