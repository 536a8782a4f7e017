import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from django.conf import settings
from django.forms.models import model_to_dict

import httpx

from ..exceptions import GstinLookupError, InvalidGstinError
from ..models import Company

logger = logging.getLogger(__name__)

# 2 digit state code, PAN (5 letters, 4 digits, 1 letter), entity no., Z, check char
GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")

GST_STATE_CODES = {
    "01": "Jammu and Kashmir",
    "02": "Himachal Pradesh",
    "03": "Punjab",
    "04": "Chandigarh",
    "05": "Uttarakhand",
    "06": "Haryana",
    "07": "Delhi",
    "08": "Rajasthan",
    "09": "Uttar Pradesh",
    "10": "Bihar",
    "11": "Sikkim",
    "12": "Arunachal Pradesh",
    "13": "Nagaland",
    "14": "Manipur",
    "15": "Mizoram",
    "16": "Tripura",
    "17": "Meghalaya",
    "18": "Assam",
    "19": "West Bengal",
    "20": "Jharkhand",
    "21": "Odisha",
    "22": "Chhattisgarh",
    "23": "Madhya Pradesh",
    "24": "Gujarat",
    "26": "Dadra and Nagar Haveli and Daman and Diu",
    "27": "Maharashtra",
    "29": "Karnataka",
    "30": "Goa",
    "31": "Lakshadweep",
    "32": "Kerala",
    "33": "Tamil Nadu",
    "34": "Puducherry",
    "35": "Andaman and Nicobar Islands",
    "36": "Telangana",
    "37": "Andhra Pradesh",
    "38": "Ladakh",
    "97": "Other Territory",
}

COMPANY_FIELDS = [
    "name", "gstin", "legal_name", "trade_name", "address", "state",
    "pincode", "phone", "email",
]


@dataclass
class GstinLookupResult:
    success: bool
    source: str          # "database", "api" or "dummy"
    data: dict = field(default_factory=dict)

    def as_dict(self):
        return {"success": self.success, "source": self.source, "data": self.data}


def normalize_gstin(gstin):
    """Upper-case and validate a GSTIN; raises InvalidGstinError."""
    gstin = (gstin or "").strip().upper()
    if len(gstin) != 15:
        raise InvalidGstinError("GSTIN must be exactly 15 characters.")
    if not GSTIN_PATTERN.match(gstin):
        raise InvalidGstinError(f"GSTIN {gstin} is not in a valid format.")
    return gstin


def _api_date(value):
    # the service answers dd/mm/yyyy
    if not value:
        return None
    try:
        return datetime.strptime(value, "%d/%m/%Y").date().isoformat()
    except ValueError:
        return None


def map_api_record(gstin, record):
    """Flatten the registry's answer into our company fields."""
    addr = (record.get("pradr") or {}).get("addr") or {}
    parts = [addr.get(k) for k in ("bno", "bnm", "flno", "st", "loc", "dst", "stcd")]
    nature = record.get("nba") or []
    return {
        "gstin": gstin,
        "legal_name": record.get("lgnm") or "",
        "trade_name": record.get("tradeNam") or "",
        "name": record.get("tradeNam") or record.get("lgnm") or "",
        "registration_date": _api_date(record.get("rgdt")),
        "business_nature": nature[0] if nature else "",
        "taxpayer_type": record.get("dty") or "",
        "constitution_of_business": record.get("ctb") or "",
        "state_jurisdiction": record.get("stj") or "",
        "gstn_status": record.get("sts") or "",
        "state": addr.get("stcd") or "",
        "address": ", ".join(p for p in parts if p),
        "building_name": addr.get("bnm") or "",
        "building_no": addr.get("bno") or "",
        "floor_no": addr.get("flno") or "",
        "street": addr.get("st") or "",
        "locality": addr.get("loc") or "",
        "city": addr.get("city") or addr.get("loc") or "",
        "district": addr.get("dst") or "",
        "pincode": str(addr.get("pncd") or ""),
        "gstin_state_code": gstin[:2],
        "last_updated_date": _api_date(record.get("lstupdt")),
    }


def fetch_from_api(gstin):
    """Query the configured GST registry service; raises GstinLookupError."""
    headers = {
        "Authorization": f"Bearer {settings.GSTIN_API_KEY}",
        "client_id": settings.GSTIN_CLIENT_ID,
        "Content-Type": "application/json",
    }
    try:
        response = httpx.get(
            settings.GSTIN_API_URL,
            params={"gstin": gstin},
            headers=headers,
            timeout=settings.GSTIN_API_TIMEOUT,
        )
        response.raise_for_status()
        payload = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("GSTIN lookup for %s failed: %s", gstin, exc)
        raise GstinLookupError(f"Failed to fetch GSTIN details: {exc}")

    if payload.get("error") or not payload.get("data"):
        raise GstinLookupError(f"GSTIN {gstin} not found.")
    return map_api_record(gstin, payload["data"])


def dummy_record(gstin):
    """Placeholder details when no registry is configured (development)."""
    code = gstin[:2]
    state = GST_STATE_CODES.get(code, "")
    pan = gstin[2:12]
    return {
        "gstin": gstin,
        "legal_name": f"Business {pan}",
        "trade_name": f"Business {pan}",
        "name": f"Business {pan}",
        "state": state,
        "address": state,
        "pincode": "",
        "gstin_state_code": code,
        "gstn_status": "Active",
    }


def lookup_gstin(gstin):
    """
    Details for a GSTIN. Looked for in this order:
      1. a company already registered with it ("database")
      2. the external registry, when GSTIN_API_KEY / GSTIN_CLIENT_ID are set ("api")
      3. a placeholder built from the state code ("dummy")
    """
    gstin = normalize_gstin(gstin)

    company = Company.objects.filter(gstin=gstin).first()
    if company is not None:
        data = model_to_dict(company, fields=COMPANY_FIELDS)
        data["id"] = company.pk
        return GstinLookupResult(success=True, source="database", data=data)

    if settings.GSTIN_API_KEY and settings.GSTIN_CLIENT_ID:
        logger.info("Looking up GSTIN %s with the registry service", gstin)
        return GstinLookupResult(success=True, source="api", data=fetch_from_api(gstin))

    logger.info("GSTIN service not configured, returning placeholder for %s", gstin)
    return GstinLookupResult(success=True, source="dummy", data=dummy_record(gstin))
