import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# Normalised column names used by every downstream step
DOC_ID = 'doc_id'
TEXT = 'text'
RATING = 'rating'
DAY = 'day'


@dataclass
class Document:
    doc_id: str
    text: str
    metadata: Dict[str, object] = field(default_factory=dict)  # rating, day, blog, ...


def _coerce_day(values: pd.Series) -> pd.Series:
    """Day as a number. Integer day indices pass through, dates become day-of-year."""
    if pd.api.types.is_numeric_dtype(values):
        return values.astype(float)
    numeric = pd.to_numeric(values, errors='coerce')
    present = values.notna()
    if numeric[present].notna().all():
        return numeric
    parsed = pd.to_datetime(values, errors='coerce')
    if parsed[present].notna().sum() >= numeric[present].notna().sum():
        logger.debug('Parsed day column as dates; using day of year')
        return parsed.dt.dayofyear.astype(float)
    return numeric


def load_corpus(path: str, text_column: str = 'documents', id_column: Optional[str] = 'docname',
                rating_column: str = 'rating', day_column: str = 'day') -> pd.DataFrame:
    """Read the blog-post CSV into a document table.

    The returned frame has the columns doc_id, text, rating and day followed by
    any other metadata columns of the file (e.g. blog).

    Raises:
        KeyError: if a required column is missing from the file.
    """
    df = pd.read_csv(path)
    required = [text_column, rating_column, day_column]
    if id_column:
        required.append(id_column)
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise KeyError(f'Missing column(s) {missing} in {path}; found {list(df.columns)}')

    n_raw = len(df)
    df = df.dropna(subset=[text_column])
    df = df[df[text_column].astype(str).str.strip() != '']
    if len(df) < n_raw:
        logger.info(f'Dropped {n_raw - len(df)} rows with empty text')

    out = pd.DataFrame({
        DOC_ID: df[id_column].astype(str) if id_column else [f'doc_{i}' for i in range(len(df))],
        TEXT: df[text_column].astype(str),
        RATING: df[rating_column],
        DAY: _coerce_day(df[day_column]),
    })
    used = {text_column, rating_column, day_column, id_column}
    for col in df.columns:
        if col not in used and col not in out.columns:
            out[col] = df[col]
    out = out.reset_index(drop=True)
    if out[DOC_ID].duplicated().any():
        raise ValueError(f'Document ids in column {id_column!r} are not unique')
    logger.info(f'Loaded {len(out)} documents from {path}')
    return out


def metadata_table(docs: pd.DataFrame) -> pd.DataFrame:
    return docs.drop(columns=[TEXT])


def iter_documents(docs: pd.DataFrame) -> Iterator[Document]:
    meta_cols = [c for c in docs.columns if c not in (DOC_ID, TEXT)]
    for rec in docs.to_dict('records'):
        meta = {c: rec[c] for c in meta_cols}
        yield Document(doc_id=rec[DOC_ID], text=rec[TEXT], metadata=meta)


def documents_from_texts(texts, metadata: Optional[Dict[str, list]] = None) -> pd.DataFrame:
    # In-memory construction, mirrors what load_corpus returns
    n = len(texts)
    df = pd.DataFrame({DOC_ID: [f'doc_{i}' for i in range(n)], TEXT: list(texts)})
    for k, v in (metadata or {}).items():
        df[k] = np.asarray(v)
    return df
