# ==========================================
# HIGHLIGHT CONFIGURATION
# ==========================================
from typing import Any, Tuple

from pydantic import BaseModel, ConfigDict
from tree_sitter import Query


class HighlightConfiguration(BaseModel):
    """
    A grammar's language handle together with its compiled queries, prepared
    once and reused across highlight runs.

    The three queries are compiled as one query in the order injections,
    locals, highlights; the pattern indices mark where each section starts.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    language: Any
    query: Any
    highlights_query: str
    injections_query: str
    locals_query: str
    locals_pattern_index: int
    highlights_pattern_index: int
    capture_names: Tuple[str, ...]

    @classmethod
    def new(cls, language, highlights_query, injections_query, locals_query):
        """
        Compile the queries for `language`.

        Raises whatever tree_sitter raises for malformed query text
        (tree_sitter.QueryError).
        """
        source = injections_query + locals_query + highlights_query
        query = Query(language, source)

        locals_start = len(injections_query.encode("utf-8"))
        highlights_start = locals_start + len(locals_query.encode("utf-8"))

        locals_pattern_index = 0
        highlights_pattern_index = 0
        for i in range(query.pattern_count):
            start = query.start_byte_for_pattern(i)
            if start < highlights_start:
                highlights_pattern_index += 1
                if start < locals_start:
                    locals_pattern_index += 1

        capture_names = tuple(query.capture_name(i) for i in range(query.capture_count))

        return cls(
            language=language,
            query=query,
            highlights_query=highlights_query,
            injections_query=injections_query,
            locals_query=locals_query,
            locals_pattern_index=locals_pattern_index,
            highlights_pattern_index=highlights_pattern_index,
            capture_names=capture_names,
        )
