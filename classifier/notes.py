"""
Per-security directives written in the security's free-text note:

    #PPC:[ignore]                skip the security entirely
    #PPC:[ignore=region,sector]  skip these taxonomy ids
    #PPC:[ISIN2=IE00B4L5Y983]    look the security up under another ISIN
"""

import re
from typing import Optional, Tuple

from classifier.models import IgnoreDirective

ISIN_OVERRIDE_PATTERN = re.compile(r"#PPC:\[ISIN2=([A-Z0-9]{12})\]")
IGNORE_PATTERN = re.compile(r"#PPC:\[ignore(?:=([^\]]+))?\]")


def parse_ignore(note: Optional[str]) -> IgnoreDirective:
    if not note:
        return IgnoreDirective()
    match = IGNORE_PATTERN.search(note)
    if not match:
        return IgnoreDirective()
    if match.group(1) is None:
        return IgnoreDirective(ignore_all=True)
    taxonomies = frozenset(s.strip() for s in match.group(1).split(",") if s.strip())
    return IgnoreDirective(taxonomies=taxonomies)


def parse_isin_override(note: Optional[str]) -> Optional[str]:
    if not note:
        return None
    match = ISIN_OVERRIDE_PATTERN.search(note)
    return match.group(1) if match else None


def parse_note(note: Optional[str]) -> Tuple[IgnoreDirective, Optional[str]]:
    return parse_ignore(note), parse_isin_override(note)
