# catalog_ingest/extraction/standalone_parser.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List

from ..contracts import CertificateProgram, CourseBundle, CURange, PriceRange, StandaloneCourse
from ..workflow_logger import log_event

# From the first bullet with a parenthesized code through the certificate footer.
SECTION_RE = re.compile(
    r"•[^•]*?\([A-Z]+\d*[A-Z]*\)[\s\S]*?(?i:certificates)[\s\S]*?(?i:for more information on certificates)"
)
SINGLE_PRICE_RE = re.compile(r"(?i:single courses cost)\s*\$(\d+)\s*-\s*\$(\d+)\s+for\s+(\w+)\s+to\s+(\w+)\s+months")
BUNDLE_PRICE_RE = re.compile(r"(?i:course bundles cost)\s*\$(\d+)\s*-\s*\$(\d+)\s+for\s+(\w+)\s+to\s+(\w+)\s+months")
COURSE_BULLET_RE = re.compile(r"•\s*([^(•\n]+?)\s*\(([A-Z]\d{3,4}[A-Z]?|[A-Z]{2,6}\d+[A-Z]*|[A-Z]{3,6})\)")

CERTIFICATES_RE = re.compile(r"(?i:certificates)([\s\S]*?)(?=(?i:for more information)|Course Descriptions|\Z)")
CERTIFICATE_BULLET_RE = re.compile(r"•\s*([^•\n]+?)\s+[–—-]\s*\$(\d{1,3}(?:,\d{3})+|\d+)")
CERTIFICATE_TERMS_RE = re.compile(
    r"Certificates are (\d+) to (\d+) months in length and consist of between (\d+) and (\d+) competency units"
)


@dataclass
class StandaloneExtraction:
    courses: Dict[str, StandaloneCourse] = field(default_factory=dict)
    certificates: Dict[str, CertificateProgram] = field(default_factory=dict)
    bundles: List[CourseBundle] = field(default_factory=list)


def _price(raw: str) -> int:
    return int(raw.replace(",", ""))


def extract_standalone(text: str, document: str = "-") -> StandaloneExtraction:
    """
    Individually priced courses, course bundles and certificates.

    Everything is read from one catalog section; without it the result is
    empty. Course bullets are only emitted when the single-course price
    sentence is present, and certificates only get a duration and CU range
    from the shared terms sentence.
    """
    out = StandaloneExtraction()
    section = SECTION_RE.search(text)
    if not section:
        log_event(status="info", actor="standalone_parser", event="section_not_found", document=document)
        return out
    block = section.group(0)

    pricing = SINGLE_PRICE_RE.search(block)
    if pricing:
        price_range = PriceRange(min=int(pricing.group(1)), max=int(pricing.group(2)))
        access = f"{pricing.group(3)}-{pricing.group(4)} months"
        for m in COURSE_BULLET_RE.finditer(block):
            code = m.group(2)
            if code in out.courses:
                continue
            out.courses[code] = StandaloneCourse(
                courseCode=code,
                courseName=re.sub(r"\s+", " ", m.group(1)).strip(),
                priceRange=price_range,
                accessDuration=access,
            )

    bundle = BUNDLE_PRICE_RE.search(block)
    if bundle:
        out.bundles.append(
            CourseBundle(
                priceRange=PriceRange(min=int(bundle.group(1)), max=int(bundle.group(2))),
                duration=f"{bundle.group(3)}-{bundle.group(4)} months",
            )
        )

    terms = None
    certs = CERTIFICATES_RE.search(block)
    if certs:
        cert_text = certs.group(1)
        terms = CERTIFICATE_TERMS_RE.search(cert_text) or CERTIFICATE_TERMS_RE.search(block)
        for m in CERTIFICATE_BULLET_RE.finditer(cert_text):
            name = m.group(1).strip()
            if name in out.certificates:
                continue
            cert = CertificateProgram(name=name, price=_price(m.group(2)))
            if terms:
                cert = cert.model_copy(update={
                    "duration": f"{terms.group(1)}-{terms.group(2)} months",
                    "cuRange": CURange(min=int(terms.group(3)), max=int(terms.group(4))),
                    "totalCUs": int(terms.group(3)),
                })
            out.certificates[name] = cert

    log_event(
        status="info",
        actor="standalone_parser",
        event="standalone_extracted",
        document=document,
        extra={
            "priced_courses": len(out.courses),
            "bundles": len(out.bundles),
            "certificates": len(out.certificates),
            "certificate_terms": terms is not None,
        },
    )
    return out
