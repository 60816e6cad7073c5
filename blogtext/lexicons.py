import os
import logging
from typing import Mapping, Optional

import numpy as np
import pandas as pd

from .text_preprocess import WORD, ensure_nltk

logger = logging.getLogger(__name__)

SENTIMENT = 'sentiment'
VALUE = 'value'
POSITIVE = 'positive'
NEGATIVE = 'negative'


def _label(values: np.ndarray) -> np.ndarray:
    return np.where(values > 0, POSITIVE, np.where(values < 0, NEGATIVE, 'neutral'))


class Lexicon:
    """Read-only word -> sentiment table (columns word, sentiment, value)."""

    def __init__(self, name: str, table: pd.DataFrame):
        missing = {WORD, SENTIMENT, VALUE} - set(table.columns)
        if missing:
            raise ValueError(f'Lexicon table is missing column(s) {sorted(missing)}')
        dup = table[WORD].duplicated()
        if dup.any():
            # keep the first entry, a join must not multiply tokens
            logger.debug(f'Lexicon {name}: dropping {int(dup.sum())} duplicate words')
            table = table[~dup]
        self.name = name
        self._table = table[[WORD, SENTIMENT, VALUE]].reset_index(drop=True)

    @property
    def table(self) -> pd.DataFrame:
        return self._table.copy()

    @property
    def is_categorical(self) -> bool:
        return set(self._table[SENTIMENT].unique()) <= {POSITIVE, NEGATIVE}

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, word: str) -> bool:
        return word in set(self._table[WORD])

    def __repr__(self) -> str:
        return f'Lexicon({self.name!r}, {len(self)} words)'

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, float], name: str = 'custom') -> 'Lexicon':
        words = list(mapping.keys())
        values = np.array([float(mapping[w]) for w in words])
        table = pd.DataFrame({WORD: words, SENTIMENT: _label(values), VALUE: values})
        return cls(name, table)

    @classmethod
    def from_csv(cls, path: str, name: Optional[str] = None) -> 'Lexicon':
        """Load `word,value` or `word,sentiment[,value]` from a CSV file."""
        df = pd.read_csv(path)
        if WORD not in df.columns:
            raise ValueError(f'Lexicon file {path} needs a {WORD!r} column')
        if VALUE not in df.columns and SENTIMENT not in df.columns:
            raise ValueError(f'Lexicon file {path} needs a {VALUE!r} or {SENTIMENT!r} column')
        if VALUE not in df.columns:
            sent = df[SENTIMENT].astype(str).str.lower()
            df[VALUE] = np.where(sent == POSITIVE, 1.0, np.where(sent == NEGATIVE, -1.0, 0.0))
        if SENTIMENT not in df.columns:
            df[SENTIMENT] = _label(df[VALUE].astype(float).values)
        df[WORD] = df[WORD].astype(str).str.lower()
        name = name or os.path.splitext(os.path.basename(path))[0]
        return cls(name, df)


def bing_lexicon() -> Lexicon:
    """Hu & Liu opinion lexicon (the 'bing' lexicon), positive=+1 / negative=-1."""
    ensure_nltk('opinion_lexicon')
    from nltk.corpus import opinion_lexicon

    pos = sorted(set(opinion_lexicon.positive()))
    neg = sorted(set(opinion_lexicon.negative()))
    table = pd.DataFrame({
        WORD: pos + neg,
        SENTIMENT: [POSITIVE] * len(pos) + [NEGATIVE] * len(neg),
        VALUE: [1.0] * len(pos) + [-1.0] * len(neg),
    })
    return Lexicon('bing', table)


def vader_lexicon() -> Lexicon:
    """VADER valence scores (roughly -4..4) for single words."""
    ensure_nltk('vader_lexicon')
    from nltk.sentiment.vader import SentimentIntensityAnalyzer

    sid = SentimentIntensityAnalyzer()
    # emoticons and multi-token entries never match a word token
    items = {w: v for w, v in sid.lexicon.items() if ' ' not in w and (w.isalpha() or "'" in w)}
    return Lexicon.from_mapping(items, name='vader')


_BUILTIN = {
    'bing': bing_lexicon,
    'vader': vader_lexicon,
}


def get_lexicon(name: str) -> Lexicon:
    """Built-in lexicon by name, or a CSV file path."""
    if name in _BUILTIN:
        lex = _BUILTIN[name]()
    elif name.endswith('.csv') or os.path.sep in name:
        if not os.path.exists(name):
            raise FileNotFoundError(f'Lexicon file not found: {name}')
        lex = Lexicon.from_csv(name)
    else:
        raise ValueError(f'Unknown lexicon: {name}. Must be one of {list(_BUILTIN)} or a CSV path')
    logger.info(f'Using lexicon {lex.name} ({len(lex)} words)')
    return lex
