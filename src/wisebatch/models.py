import typing as t

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RawRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    tags: list[t.Any] | None = None

    @model_validator(mode="before")
    @classmethod
    def coerce_tags(cls, data: t.Any):
        if not isinstance(data, dict):
            return data
        tags = data.get("tags")
        if tags is not None and not isinstance(tags, list):
            # a scalar or mapping here carries no usable tags
            return {**data, "tags": None}
        return data


class BulkEnrichmentRequest(BaseModel):
    additional: list[str] = Field(default_factory=lambda: ["osint", "malware"])
    query: list[str]


class BulkEnrichmentResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    results: dict[str, RawRecord] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def drop_null_results(cls, data: t.Any):
        if not isinstance(data, dict):
            return data
        results = data.get("results")
        if results is None:
            return {**data, "results": {}}
        if isinstance(results, dict):
            return {
                **data,
                "results": {key: record for key, record in results.items() if record is not None},
            }
        return data

    def records(self) -> dict[str, dict[str, t.Any]]:
        return {key: record.model_dump() for key, record in self.results.items()}
