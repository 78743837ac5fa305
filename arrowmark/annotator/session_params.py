"""Session input parameters read once from the hosting page's query string."""

from dataclasses import dataclass
from urllib.parse import parse_qs, urlsplit

from .uploader import UploadMetadata


@dataclass(frozen=True)
class SessionParams:
    """Image source, file name and correlation identifiers.

    Missing parameters are empty strings.
    """

    image: str = ""
    original_file_name: str = ""
    row_id: str = ""
    table: str = ""
    job_id: str = ""

    @classmethod
    def from_query_string(cls, query: str) -> "SessionParams":
        """Parse ``image``, ``originalFileName``, ``row``, ``table`` and ``job``.

        Examples:
            >>> SessionParams.from_query_string("?image=a.txt&row=7").row_id
            '7'
        """
        values = parse_qs(query.lstrip("?"), keep_blank_values=True)

        def _first(key: str) -> str:
            return values.get(key, [""])[0]

        return cls(
            image=_first("image"),
            original_file_name=_first("originalFileName"),
            row_id=_first("row"),
            table=_first("table"),
            job_id=_first("job"),
        )

    @classmethod
    def from_url(cls, url: str) -> "SessionParams":
        return cls.from_query_string(urlsplit(url).query)

    def upload_metadata(self) -> UploadMetadata:
        return UploadMetadata(
            original_file_name=self.original_file_name,
            row_id=self.row_id,
            table=self.table,
            job_id=self.job_id,
        )
