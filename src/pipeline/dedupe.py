from __future__ import annotations

from typing import Iterable, List

from ..schemas import ContactRecord


def dedupe_new(existing: Iterable[ContactRecord], candidates: Iterable[ContactRecord]) -> List[ContactRecord]:
    """Return the candidates that are not already known, in candidate order.

    Same entity = shared non-null email or shared non-null LinkedIn profile
    (see ContactRecord.same_entity). Candidates accepted earlier in this call
    count as known, so one batch never yields two records for one email.
    Records with neither field are always new.

    Index lookups replace the pairwise scan; results are identical.
    """
    emails = set()
    profiles = set()
    for rec in existing:
        if rec.email is not None:
            emails.add(rec.email)
        if rec.linkedin_profile is not None:
            profiles.add(rec.linkedin_profile)

    fresh: List[ContactRecord] = []
    for cand in candidates:
        if cand.email is not None and cand.email in emails:
            continue
        if cand.linkedin_profile is not None and cand.linkedin_profile in profiles:
            continue
        fresh.append(cand)
        if cand.email is not None:
            emails.add(cand.email)
        if cand.linkedin_profile is not None:
            profiles.add(cand.linkedin_profile)
    return fresh
