"""
LinkedIn job extractor

Listing stage: the public guest search endpoint returns a bare list of <li>
job cards (no surrounding page). Each card yields one JobRecord.

    https://{domain}/jobs-guest/jobs/api/seeMoreJobPostings/search
        ?keywords=<kw>&start=<page*25>&location=<loc>&f_TPR=r<seconds>

Detail stage: a job view page is probed for one of several known content
containers, then compensation / description / referral are read through
ordered selector chains. The description block's HTML is parsed a second
time for the recruiter card and the long-form description text.

All parsing here is pure (HTML in, values out). Navigation, waiting and
retry live in workers.extractor_worker.
"""

from datetime import datetime, timezone
from typing import Dict, Optional
from urllib.parse import quote

from bs4 import Tag

from extractors.base_extractor import BaseJobExtractor
from extractors.enums import Source
from extractors.selector_chain import (
    css_attr,
    css_html,
    css_text,
    first_present,
    parse_html,
)
from models.job import JobRecord
from sourcing.targets import CrawlTarget

RESULTS_PER_PAGE = 25
DEFAULT_TIME_FILTER_SECONDS = 86400

# =============================================================================
# Listing selectors
# =============================================================================

CARD_TITLE = ".base-search-card__title"
LINK_SELECTORS = [
    ".base-card__full-link",
    ".base-search-card--link",
    "a[href*='/jobs/view/']",
    "a.base-card__full-link",
    "a",
]

# =============================================================================
# Detail selectors
# =============================================================================

CONTAINER_SELECTORS = [
    ".decorated-job-posting__details",
    ".jobs-description",
    ".jobs-box__html-content",
    ".job-view-layout",
    "[data-job-id]",
    ".jobs-details",
]

COMPENSATION_SELECTORS = [
    ".core-section-container.compensation",
    ".job-details-compensation",
    ".jobs-details__compensation",
    "[data-test-id*='compensation']",
    ".salary-insights",
]

DESCRIPTION_SELECTORS = [
    ".core-section-container.description",
    ".jobs-description",
    ".jobs-box__html-content",
    ".job-details-job-description",
    ".jobs-description-content",
    ".jobs-details__job-description",
]

REFERRAL_SELECTORS = [
    ".core-section-container.find-a-referral",
    ".jobs-details__referral",
    ".job-details-referral",
]

DETAILED_DESCRIPTION_SELECTORS = [
    ".description__text--rich .show-more-less-html__markup",
    ".jobs-description__content .show-more-less-html__markup",
    ".description__text--rich",
    ".jobs-description__content",
    ".jobs-description-content__text",
    ".jobs-box__html-content",
    ".job-details-job-description",
    ".decorated-job-posting__details .jobs-description",
    "[data-job-details-description]",
    ".artdeco-card .jobs-description",
]

FALLBACK_DESCRIPTION_SELECTORS = [
    ".jobs-description",
    ".job-description",
    ".description",
    "[class*='description']",
    "[class*='job-details']",
]

COMPENSATION_CHAIN = [css_text(s) for s in COMPENSATION_SELECTORS]
DESCRIPTION_CHAIN = [css_text(s) for s in DESCRIPTION_SELECTORS]
DESCRIPTION_HTML_CHAIN = [css_html(s) for s in DESCRIPTION_SELECTORS]
REFERRAL_CHAIN = [css_text(s) for s in REFERRAL_SELECTORS]
DETAILED_DESCRIPTION_CHAIN = (
    [css_text(s, min_length=101) for s in DETAILED_DESCRIPTION_SELECTORS]
    + [css_text(s, min_length=51) for s in FALLBACK_DESCRIPTION_SELECTORS]
)

NO_COMPENSATION = "No compensation information"
NO_DESCRIPTION = "No description available"
NO_REFERRAL = "No referral information"
NO_DESCRIPTION_HTML = "No description HTML available"
NO_DETAILED_DESCRIPTION = "No detailed description found"
NO_RECRUITER_SECTION = "No recruiter section found"

DETAIL_URL_MARKERS = ("linkedin.com/jobs/view", "linkedin.com/jobs/collections")
LOGIN_WALL_MARKERS = ("sign-in", "login", "challenge")


def build_search_url(target: CrawlTarget, time_filter_seconds: Optional[int] = None) -> str:
    """
    Build the deterministic search URL for one crawl target.

    Example:
        >>> build_search_url(target)  # keyword="CFA", page 1, United Kingdom
        'https://linkedin.com/jobs-guest/jobs/api/seeMoreJobPostings/search?keywords=CFA&start=25&location=United%20Kingdom&f_TPR=r86400'
    """
    config = target.country_config
    seconds = time_filter_seconds or DEFAULT_TIME_FILTER_SECONDS
    url = (
        f"https://{config.domain}/jobs-guest/jobs/api/seeMoreJobPostings/search"
        f"?keywords={quote(target.keyword, safe='')}"
        f"&start={target.page_number * RESULTS_PER_PAGE}"
    )
    if config.location_param:
        url += f"&location={quote(config.location_param, safe='')}"
    return url + f"&f_TPR=r{seconds}"


def is_job_detail_url(url: str) -> bool:
    """True if a navigation ended on a job view/collection page."""
    return any(marker in url for marker in DETAIL_URL_MARKERS)


def looks_like_login_wall(content: str) -> bool:
    return any(marker in content for marker in LOGIN_WALL_MARKERS)


def _to_iso_date(value: str) -> str:
    """'2025-03-14' -> '2025-03-14T00:00:00+00:00'; anything unparsable -> ''."""
    try:
        year, month, day = (int(part) for part in value.split("-")[:3])
        return datetime(year, month, day, tzinfo=timezone.utc).isoformat()
    except (TypeError, ValueError):
        return ""


def _find_card_url(card: Tag) -> str:
    for selector in LINK_SELECTORS:
        link = card.select_one(selector)
        href = (link.get("href") or "") if link is not None else ""
        if "/jobs" in href:
            return href.strip()

    # Any anchor that at least points somewhere on the site
    for anchor in card.find_all("a"):
        href = anchor.get("href") or ""
        if "/jobs" in href or "linkedin.com" in href:
            return href.strip()
    return ""


class LinkedInExtractor(BaseJobExtractor):
    """Parser for LinkedIn guest search results and job view pages."""

    SOURCE = Source.LINKEDIN

    # =========================================================================
    # Listing stage
    # =========================================================================

    def parse_listing(self, raw_content: str) -> list[JobRecord]:
        soup = parse_html(raw_content)
        records = []
        for card in soup.find_all("li"):
            record = self.parse_job_card(card)
            if record is not None:
                records.append(record)
        return records

    def parse_job_card(self, card: Tag) -> Optional[JobRecord]:
        """
        Parse one <li> card. Returns None for non-job items and linkless cards.
        """
        title_el = card.select_one(CARD_TITLE)
        if title_el is None:
            return None

        url = _find_card_url(card)
        if not url:
            return None

        img = card.find("img")
        company_el = card.select_one(".base-search-card__subtitle")
        company_link = company_el.find("a") if company_el is not None else None
        date_el = card.select_one(".job-search-card__listdate, .job-search-card__listdate--new")
        benefits = first_present([css_text(".job-posting-benefits__text")], card)

        first_child = next(iter(card.find_all(recursive=False)), None)
        entity_urn = first_child.get("data-entity-urn", "") if first_child is not None else ""

        return JobRecord(
            url=url,
            id=entity_urn,
            title=title_el.get_text(strip=True),
            company=company_el.get_text(strip=True) if company_el is not None else "",
            company_url=(company_link.get("href") or "") if company_link is not None else "",
            location=first_present([css_text(".job-search-card__location")], card),
            posted_date=_to_iso_date(date_el.get("datetime", "")) if date_el is not None else "",
            posted_time_ago=date_el.get_text(strip=True) if date_el is not None else "",
            description=first_present([css_text(".job-search-card__snippet")], card),
            img=(img.get("data-delayed-url") or "") if img is not None else "",
            early_applicant="early applicant" in benefits.lower(),
        )

    # =========================================================================
    # Detail stage
    # =========================================================================

    def extract_raw_info(self, raw_content: str, container_selector: Optional[str] = None) -> Dict[str, str]:
        """
        Read the section-level fields of a job view page.

        Args:
            raw_content: Full page HTML
            container_selector: Container found while waiting on the page;
                the whole document is used if it is missing

        Returns:
            {compensation, description, referral, description_html}
        """
        soup = parse_html(raw_content)
        root = soup.select_one(container_selector) if container_selector else None
        if root is None:
            root = soup

        return {
            "compensation": first_present(COMPENSATION_CHAIN, root, NO_COMPENSATION),
            "description": first_present(DESCRIPTION_CHAIN, root, NO_DESCRIPTION),
            "referral": first_present(REFERRAL_CHAIN, root, NO_REFERRAL),
            "description_html": first_present(DESCRIPTION_HTML_CHAIN, root, NO_DESCRIPTION_HTML),
        }

    def parse_detailed_description(self, description_html: str) -> Dict[str, str]:
        """
        Second pass over the description block: recruiter card + long text.

        Returns:
            {recruiter_name, recruiter_role, recruiter_image_url,
             recruiter_profile_url, detailed_description}
        """
        soup = parse_html(description_html)
        result = {}

        section = soup.select_one(".message-the-recruiter")
        card = section.select_one(".base-main-card") if section is not None else None
        if card is not None:
            result["recruiter_name"] = first_present(
                [css_text(".base-main-card__title")], card, "No name found")
            result["recruiter_role"] = first_present(
                [css_text(".base-main-card__subtitle")], card, "No role found")
            result["recruiter_image_url"] = first_present(
                [css_attr("img", "src")], card, "No image found")
            result["recruiter_profile_url"] = first_present(
                [css_attr("a.base-card__full-link", "href")], card, "No LinkedIn URL found")
        else:
            for key in ("recruiter_name", "recruiter_role", "recruiter_image_url", "recruiter_profile_url"):
                result[key] = NO_RECRUITER_SECTION

        result["detailed_description"] = first_present(
            DETAILED_DESCRIPTION_CHAIN, soup, NO_DETAILED_DESCRIPTION)
        return result

    def apply_details(self, record: JobRecord, raw_content: str, container_selector: Optional[str]) -> JobRecord:
        """Return a copy of record with every enrichment field filled from the page."""
        info = self.extract_raw_info(raw_content, container_selector)
        details = self.parse_detailed_description(info["description_html"])

        enriched = JobRecord.from_dict(record.to_dict(include_html=True))
        enriched.compensation = info["compensation"]
        enriched.description = info["description"]
        enriched.referral = info["referral"]
        enriched.description_html = info["description_html"]
        for key, value in details.items():
            setattr(enriched, key, value)
        return enriched


def stamp_target(records: list[JobRecord], target: CrawlTarget) -> list[JobRecord]:
    """Tag parsed records with the crawl target that discovered them."""
    for record in records:
        record.search_country = target.country
        record.currency = target.country_config.currency
        record.domain = target.country_config.domain
        record.input_keyword = target.keyword
    return records
