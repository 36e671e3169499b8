"""
Work-item hyperlink strings. String formatting only; nothing here touches the network.
"""
from typing import Optional
from urllib.parse import quote

import pandas as pd

from src.config import LinkContext


def build_work_item_link(work_item_id: Optional[str], context: LinkContext) -> Optional[str]:
    """
    Edit-form URL for a work item:
    {base_url}/{organization}/{project}/_workitems/edit/{id}

    None when the id is blank or the context has no organization or project.
    """
    if work_item_id is None or pd.isna(work_item_id) or str(work_item_id).strip() == "":
        return None
    if not (context.organization or "").strip() or not (context.project or "").strip():
        return None

    base = context.base_url.rstrip("/")
    org = quote(context.organization, safe="")
    project = quote(context.project, safe="")
    return f"{base}/{org}/{project}/_workitems/edit/{quote(str(work_item_id).strip(), safe='')}"


def build_link_series(ids: pd.Series, context: LinkContext) -> pd.Series:
    """Vector form of build_work_item_link."""
    return ids.map(lambda work_item_id: build_work_item_link(work_item_id, context)).astype(object)
