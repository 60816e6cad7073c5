import re
import logging
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from .data import DOC_ID, TEXT

logger = logging.getLogger(__name__)

WORD = 'word'

# Word-boundary split: letters/digits, keeping in-word apostrophes (don't, obama's)
_TOKEN_RE = re.compile(r"[a-z0-9]+(?:'[a-z0-9]+)*")
_URL_RE = re.compile(r'https?://\S+|www\.\S+')

# NLTK resources are downloaded lazily inside functions to avoid import-time failures
_NLTK_PATHS = {
    'stopwords': 'corpora/stopwords',
    'opinion_lexicon': 'corpora/opinion_lexicon',
    'vader_lexicon': 'sentiment/vader_lexicon',
}


def ensure_nltk(*resources: str) -> None:
    import nltk
    for name in resources:
        try:
            nltk.data.find(_NLTK_PATHS[name])
        except LookupError:
            logger.info(f'Downloading NLTK resource {name}')
            nltk.download(name, quiet=True)


def clean_text(text: str) -> str:
    if not isinstance(text, str):
        return ''
    s = text.lower()
    s = _URL_RE.sub(' ', s)
    # curly apostrophes from scraped html
    s = s.replace('’', "'")
    return s


def tokenize_text(text: str) -> List[str]:
    return _TOKEN_RE.findall(clean_text(text))


def tokenize_documents(docs: pd.DataFrame, text_column: str = TEXT) -> pd.DataFrame:
    """Unnest documents into a long token table with one row per (doc_id, word).

    Documents without any extractable token contribute no rows.
    """
    rows_doc = []
    rows_word = []
    for doc_id, text in zip(docs[DOC_ID], docs[text_column]):
        toks = tokenize_text(text)
        rows_doc.extend([doc_id] * len(toks))
        rows_word.extend(toks)
    tokens = pd.DataFrame({DOC_ID: rows_doc, WORD: rows_word})
    logger.debug(f'Tokenized {len(docs)} documents into {len(tokens)} tokens')
    return tokens


def load_stop_words(source: str = 'snowball', extra: Iterable[str] = ()) -> pd.DataFrame:
    """Stop-word table with columns word, lexicon.

    source='snowball' uses the NLTK English list; source='none' starts empty so
    only `extra` words are used.
    """
    frames = []
    if source == 'snowball':
        ensure_nltk('stopwords')
        from nltk.corpus import stopwords
        frames.append(pd.DataFrame({WORD: sorted(set(stopwords.words('english'))), 'lexicon': 'snowball'}))
    elif source != 'none':
        raise ValueError(f"Unknown stop-word source: {source}. Must be 'snowball' or 'none'")
    extra = sorted({w.lower() for w in extra})
    if extra:
        frames.append(pd.DataFrame({WORD: extra, 'lexicon': 'custom'}))
    if not frames:
        return pd.DataFrame({WORD: pd.Series(dtype=str), 'lexicon': pd.Series(dtype=str)})
    return pd.concat(frames, ignore_index=True).drop_duplicates(subset=[WORD])


def _stop_set(stop_words) -> set:
    if isinstance(stop_words, pd.DataFrame):
        return set(stop_words[WORD])
    return set(stop_words)


def remove_stop_words(tokens: pd.DataFrame, stop_words) -> pd.DataFrame:
    # anti-join against the stop-word set, nothing else is touched
    stops = _stop_set(stop_words)
    out = tokens[~tokens[WORD].isin(stops)].reset_index(drop=True)
    logger.info(f'Removed {len(tokens) - len(out)} stop-word tokens, {len(out)} remain')
    return out


def count_words(tokens: pd.DataFrame, by: Optional[Sequence[str]] = None) -> pd.DataFrame:
    keys = list(by or []) + [WORD]
    return (tokens.groupby(keys).size().reset_index(name='n')
            .sort_values(keys[:-1] + ['n'], ascending=[True] * (len(keys) - 1) + [False])
            .reset_index(drop=True))


def process_text(text: str, stops: set, min_length: int = 3, stem: bool = True,
                 stemmer=None) -> List[str]:
    s = clean_text(text)
    # numbers and punctuation out, stop words are matched before stemming
    s = re.sub(r'\d+', ' ', s)
    s = re.sub(r"[^a-z'\s]", ' ', s)
    out = []
    for tok in re.split(r'\s+', s):
        tok = tok.strip("'")
        if not tok or tok in stops:
            continue
        if len(tok) < min_length:
            continue
        if stem:
            tok = stemmer.stem(tok)
        out.append(tok)
    return out


def process_documents(docs: pd.DataFrame, stop_words=(), min_length: int = 3, stem: bool = True,
                      text_column: str = TEXT) -> List[List[str]]:
    """Topic-model preprocessing: lowercase, strip numbers/punctuation and stop words, stem.

    Returns one token list per row of `docs`, in the same order.
    """
    from nltk.stem import PorterStemmer

    stops = _stop_set(stop_words)
    stemmer = PorterStemmer() if stem else None
    token_lists = [process_text(t, stops, min_length=min_length, stem=stem, stemmer=stemmer)
                   for t in docs[text_column]]
    n_empty = sum(1 for tl in token_lists if not tl)
    if n_empty:
        logger.info(f'{n_empty} documents have no tokens after preprocessing')
    return token_lists
