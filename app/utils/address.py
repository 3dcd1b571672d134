"""주소 파싱 유틸리티 — 동네(neighborhood) 추출.

Address parsing utility.
Assumes a structured "Street, Neighborhood/City, Region, Country" address,
which is what the geocoding autocomplete on the submission form produces.
The same rule runs at creation time and as a statistics fallback for
records stored before the neighborhood column existed.
"""

UNKNOWN_NEIGHBORHOOD: str = "Unknown"


def extract_neighborhood(address: str | None) -> str:
    """주소 문자열에서 동네 이름을 추출합니다.

    Split the address on commas, trim each part and drop empty parts.
    Two or more parts → the part after the street; exactly one → that part;
    none (blank address) → "Unknown".

    Args:
        address: 원본 주소 (Raw address string, may be None)

    Returns:
        str: 동네 이름 (Neighborhood label)

    Example:
        extract_neighborhood("123 Main St, Downtown, Calgary, AB")  # "Downtown"
        extract_neighborhood("Downtown")                            # "Downtown"
        extract_neighborhood("  ")                                  # "Unknown"
    """
    if not address:
        return UNKNOWN_NEIGHBORHOOD

    parts: list[str] = [part.strip() for part in address.split(",")]
    parts = [part for part in parts if part]

    if len(parts) >= 2:
        return parts[1]
    if len(parts) == 1:
        return parts[0]
    return UNKNOWN_NEIGHBORHOOD
