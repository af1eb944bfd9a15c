"""
Normalized job record.

A JobRecord is created by the list-page parser, stamped with the crawl target
that discovered it, and later filled in by detail enrichment. At storage and
export boundaries it is serialized with camelCase keys.

Identity: the normalized URL is the dedup key. Two records with the same
normalized URL are the same job no matter which keyword/country found it.
"""

from dataclasses import dataclass, fields
from utils.urls import normalize_url, url_fingerprint


# Python attribute -> serialized key, for fields whose names differ
_CAMEL_KEYS = {
    "company_url": "companyUrl",
    "posted_date": "postedDate",
    "posted_time_ago": "postedTimeAgo",
    "extracted_date": "extractedDate",
    "detailed_description": "detailedDescription",
    "recruiter_name": "recruiterName",
    "recruiter_role": "recruiterRole",
    "recruiter_image_url": "recruiterImageUrl",
    "recruiter_profile_url": "recruiterLinkedInUrl",
    "early_applicant": "earlyApplicant",
    "search_country": "searchCountry",
    "input_keyword": "inputKeyword",
    "description_html": "descriptionHtml",
}

# Enrichment fields overwritten with "Error: <message>" when enrichment fails
ENRICHMENT_FIELDS = (
    "compensation",
    "description",
    "referral",
    "recruiter_name",
    "recruiter_role",
    "recruiter_image_url",
    "recruiter_profile_url",
    "detailed_description",
)


@dataclass
class JobRecord:
    """One job listing. Every field defaults to empty so partial cards survive parsing."""
    url: str
    id: str = ""
    title: str = ""
    company: str = ""
    company_url: str = ""
    location: str = ""
    country: str = ""
    city: str = ""
    region: str = ""
    currency: str = ""
    posted_date: str = ""
    posted_time_ago: str = ""
    extracted_date: str = ""
    description: str = ""
    detailed_description: str = ""
    compensation: str = ""
    referral: str = ""
    recruiter_name: str = ""
    recruiter_role: str = ""
    recruiter_image_url: str = ""
    recruiter_profile_url: str = ""
    img: str = ""
    early_applicant: bool = False
    search_country: str = ""
    input_keyword: str = ""
    domain: str = ""
    description_html: str = ""

    def __post_init__(self):
        if not self.id and self.url:
            self.id = f"job-{url_fingerprint(self.url)}"

    @property
    def normalized_url(self) -> str:
        return normalize_url(self.url)

    def to_dict(self, include_html: bool = False) -> dict:
        """Serialize with camelCase keys (storage/export shape)."""
        data = {}
        for f in fields(self):
            if f.name == "description_html" and not include_html:
                continue
            data[_CAMEL_KEYS.get(f.name, f.name)] = getattr(self, f.name)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "JobRecord":
        reverse = {v: k for k, v in _CAMEL_KEYS.items()}
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = reverse.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)

    def with_error(self, message: str) -> "JobRecord":
        """Copy of this record with every enrichment field set to the error placeholder."""
        data = self.to_dict(include_html=True)
        record = JobRecord.from_dict(data)
        for name in ENRICHMENT_FIELDS:
            setattr(record, name, f"Error: {message}")
        return record

    def is_error(self) -> bool:
        return self.compensation.startswith("Error:")

    def __repr__(self) -> str:  # keep log lines short
        return f"JobRecord(id={self.id!r}, title={self.title!r}, company={self.company!r})"
