"""Type definitions for HTTP and GraphQL payloads."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# Type for JSON responses (can be object, array, or None for errors)
type JsonResponse = dict[str, Any] | list[Any] | None


class GraphQLQuery(BaseModel):
    """Body of a GraphQL POST request."""

    query: str = Field(..., description="GraphQL query document")


class GraphQLError(BaseModel):
    """Entry of the `errors` array of a GraphQL response."""

    message: str = Field(default="", description="Error message")

    model_config = ConfigDict(extra="allow")


__all__ = ["GraphQLError", "GraphQLQuery", "JsonResponse"]
