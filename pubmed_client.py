"""PubMed E-utilities client: search, summary metadata and abstract enrichment."""

from __future__ import annotations

import html
import logging
import os
import re
import time
from datetime import UTC, datetime
from typing import Any

import requests

from errors import NetworkError, ParseError, ResearchError, UpstreamError
from models import AbstractRecord, Article

EUTILS_BASE_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
DEFAULT_NCBI_EMAIL = "ma-research@example.org"
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_REQUEST_DELAY_SECONDS = 0.2

# Only the top hits get an efetch round-trip; the rest keep an empty abstract.
ENRICH_LIMIT = 10
FILTERED_SEARCH_MAX_RESULTS = 20

LOGGER = logging.getLogger(__name__)

_ABSTRACT_RE = re.compile(r"<AbstractText([^>]*)>(.*?)</AbstractText>", re.IGNORECASE | re.DOTALL)
_LABEL_RE = re.compile(r'Label="([^"]*)"', re.IGNORECASE)
_TITLE_RE = re.compile(r"<ArticleTitle[^>]*>(.*?)</ArticleTitle>", re.IGNORECASE | re.DOTALL)
_PUB_YEAR_RE = re.compile(r"<PubDate>.*?<Year>(\d{4})</Year>.*?</PubDate>", re.IGNORECASE | re.DOTALL)
_MESH_RE = re.compile(r"<DescriptorName[^>]*>(.*?)</DescriptorName>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")


class PubMedClient:
    """Thin wrapper over esearch / esummary / efetch.

    Search failures surface as NetworkError / UpstreamError. Abstract fetches
    never raise: one bad record must not abort a batch, so failures come back
    as an AbstractRecord with ``error`` set.
    """

    def __init__(
        self,
        email: str | None = None,
        api_key: str | None = None,
        base_url: str = EUTILS_BASE_URL,
        request_delay: float | None = None,
        timeout: int | None = None,
    ) -> None:
        self.email = email or os.getenv("NCBI_EMAIL") or DEFAULT_NCBI_EMAIL
        self.api_key = api_key if api_key is not None else os.getenv("NCBI_API_KEY")
        self.base_url = base_url.rstrip("/")
        if request_delay is None:
            request_delay = float(
                os.getenv("PUBMED_REQUEST_DELAY_SECONDS") or DEFAULT_REQUEST_DELAY_SECONDS
            )
        self.request_delay = request_delay
        self.timeout = timeout or int(os.getenv("PUBMED_TIMEOUT_SECONDS") or DEFAULT_TIMEOUT_SECONDS)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, query: str, max_results: int = 20) -> list[Article]:
        """Return up to ``max_results`` articles in PubMed relevance order."""
        try:
            id_list = self._search_ids(query, max_results)
            if not id_list:
                LOGGER.info("PubMed search: no ids for query=%r", query)
                return []
            summaries = self._fetch_summaries(id_list)
        except ResearchError as exc:
            LOGGER.error("PubMed search failed for query=%r: %s", query, exc)
            raise

        articles: list[Article] = []
        for pmid in id_list:
            article = _parse_summary(summaries.get(pmid))
            if article is not None:
                articles.append(article)

        LOGGER.info(
            "PubMed search: query=%r ids=%s articles=%s", query, len(id_list), len(articles)
        )
        return articles

    def search_and_enrich(self, query: str, max_results: int = 15) -> list[Article]:
        """Search, then merge efetch abstracts into the first ENRICH_LIMIT hits."""
        LOGGER.info("Searching PubMed for: %s", query)
        articles = self.search(query, max_results)
        LOGGER.info("Found %s articles", len(articles))

        head = articles[:ENRICH_LIMIT]
        records = {record.pmid: record for record in self.fetch_abstracts([a.pmid for a in head])}
        for article in head:
            record = records.get(article.pmid)
            if record is None:
                continue
            article.abstract = record.abstract
            if record.mesh_terms and not article.mesh_terms:
                article.mesh_terms = list(record.mesh_terms)

        return articles

    def search_clinical_trials(self, query: str, phase: str | None = None) -> list[Article]:
        clinical_query = query
        if phase:
            clinical_query += f" AND {phase}[pt]"
        clinical_query += " AND (clinical trial[pt] OR randomized controlled trial[pt])"
        return self.search_and_enrich(clinical_query, FILTERED_SEARCH_MAX_RESULTS)

    def search_recent(self, query: str, years_back: int = 2) -> list[Article]:
        current_year = datetime.now(UTC).year
        start_year = current_year - years_back
        dated_query = f"{query} AND {start_year}[dp] : {current_year}[dp]"
        return self.search_and_enrich(dated_query, FILTERED_SEARCH_MAX_RESULTS)

    # ------------------------------------------------------------------
    # Abstracts
    # ------------------------------------------------------------------

    def fetch_abstract(self, pmid: str) -> AbstractRecord:
        try:
            response = self._get(
                "efetch.fcgi",
                {"id": pmid, "retmode": "xml", "rettype": "abstract"},
            )
        except ResearchError as exc:
            LOGGER.warning("PubMed abstract fetch failed for pmid=%s: %s", pmid, exc)
            return AbstractRecord(pmid=pmid, error=str(exc))

        record = parse_efetch_xml(pmid, response.text)
        if record.error:
            LOGGER.warning("PubMed abstract parse failed for pmid=%s: %s", pmid, record.error)
        return record

    def fetch_abstracts(self, pmids: list[str]) -> list[AbstractRecord]:
        """Fetch abstracts one at a time with a fixed courtesy delay in between."""
        records: list[AbstractRecord] = []
        for index, pmid in enumerate(pmids):
            if index:
                time.sleep(self.request_delay)
            records.append(self.fetch_abstract(pmid))
        return records

    def format_citation(self, article: Article) -> str:
        return format_citation(article)

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _search_ids(self, query: str, max_results: int) -> list[str]:
        response = self._get(
            "esearch.fcgi",
            {"term": query, "retmax": max_results, "retmode": "json", "sort": "relevance"},
        )
        body = _json_body(response, "esearch.fcgi")
        try:
            id_list = body["esearchresult"]["idlist"]
        except (KeyError, TypeError) as exc:
            raise UpstreamError(f"Unexpected esearch response shape: {body}") from exc
        if not isinstance(id_list, list):
            raise UpstreamError(f"Unexpected esearch idlist: {id_list!r}")
        return [str(pmid) for pmid in id_list][:max_results]

    def _fetch_summaries(self, id_list: list[str]) -> dict[str, Any]:
        response = self._get("esummary.fcgi", {"id": ",".join(id_list), "retmode": "json"})
        body = _json_body(response, "esummary.fcgi")
        result = body.get("result") if isinstance(body, dict) else None
        if not isinstance(result, dict):
            raise UpstreamError(f"Unexpected esummary response shape: {body}")
        return result

    def _get(self, endpoint: str, params: dict[str, Any]) -> requests.Response:
        query_params: dict[str, Any] = {"db": "pubmed", **params, "email": self.email}
        if self.api_key:
            query_params["api_key"] = self.api_key

        try:
            response = requests.get(
                f"{self.base_url}/{endpoint}",
                params=query_params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise NetworkError(f"PubMed {endpoint} request failed: {exc}") from exc

        if not response.ok:
            raise UpstreamError(
                f"PubMed {endpoint} returned an error",
                status_code=response.status_code,
                body=response.text,
            )
        return response


def parse_efetch_xml(pmid: str, xml: str) -> AbstractRecord:
    """Pull abstract, title, year and MeSH terms out of an efetch payload.

    Pattern matching, not a real XML parser. A payload without abstract text
    still yields whatever title/year/MeSH could be found, with ``error`` set.
    """
    title_match = _TITLE_RE.search(xml)
    year_match = _PUB_YEAR_RE.search(xml)
    mesh_terms = tuple(term for term in (_clean(m) for m in _MESH_RE.findall(xml)) if term)

    try:
        abstract = _extract_abstract(xml)
        error = None
    except ParseError as exc:
        abstract = ""
        error = str(exc)

    return AbstractRecord(
        pmid=pmid,
        abstract=abstract,
        title=_clean(title_match.group(1)) if title_match else None,
        pub_year=year_match.group(1) if year_match else None,
        mesh_terms=mesh_terms,
        error=error,
    )


def _extract_abstract(xml: str) -> str:
    segments: list[str] = []
    for attrs, fragment in _ABSTRACT_RE.findall(xml):
        text = _clean(fragment)
        if not text:
            continue
        label = _LABEL_RE.search(attrs)
        segments.append(f"{label.group(1)}: {text}" if label else text)

    if not segments:
        raise ParseError("No AbstractText found in efetch payload")
    return "\n".join(segments)


def _parse_summary(item: Any) -> Article | None:
    if not isinstance(item, dict) or not item.get("uid"):
        return None

    authors = [
        author["name"]
        for author in item.get("authors") or []
        if isinstance(author, dict) and _as_str(author.get("name"))
    ]
    return Article(
        pmid=str(item["uid"]),
        title=_as_str(item.get("title")) or "No title",
        authors=authors,
        journal=_as_str(item.get("fulljournalname")) or "",
        pub_date=_as_str(item.get("pubdate")) or "",
        source=_as_str(item.get("source")) or "",
        doi=_extract_doi(item),
        abstract="",
        mesh_terms=[],
    )


def _extract_doi(item: dict[str, Any]) -> str:
    for article_id in item.get("articleids") or []:
        if isinstance(article_id, dict) and article_id.get("idtype") == "doi":
            value = _as_str(article_id.get("value"))
            if value:
                return value
    return _as_str(item.get("elocationid")) or ""


def _json_body(response: requests.Response, endpoint: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamError(f"PubMed {endpoint} returned non-JSON body") from exc


def _clean(fragment: str) -> str:
    text = html.unescape(_TAG_RE.sub("", fragment))
    return " ".join(text.split())


def _as_str(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None


def format_citation(article: Article) -> str:
    """APA-flavoured one-line citation."""
    author_str = ", ".join(article.authors) if article.authors else "Unknown"
    year = article.year or "n.d."
    return f"{author_str} ({year}). {article.title}. {article.journal}. PMID: {article.pmid}"
