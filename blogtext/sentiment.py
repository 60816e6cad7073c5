import logging
from typing import Optional, Sequence

import pandas as pd

from .data import DOC_ID, RATING, DAY
from .lexicons import Lexicon, SENTIMENT, VALUE, POSITIVE, NEGATIVE
from .text_preprocess import WORD

logger = logging.getLogger(__name__)

GROUP_KEYS = (RATING, DAY)


def join_sentiment(tokens: pd.DataFrame, lexicon: Lexicon) -> pd.DataFrame:
    # Inner join: tokens the lexicon does not know contribute nothing
    joined = tokens.merge(lexicon.table, on=WORD, how='inner')
    logger.debug(f'{len(joined)} of {len(tokens)} tokens matched lexicon {lexicon.name}')
    return joined


def _with_metadata(joined: pd.DataFrame, metadata: Optional[pd.DataFrame], keys: Sequence[str]) -> pd.DataFrame:
    need = [k for k in keys if k not in joined.columns]
    if not need:
        return joined
    if metadata is None:
        raise ValueError(f'Grouping keys {need} are not in the token table and no metadata was given')
    missing = [k for k in need if k not in metadata.columns]
    if missing:
        raise KeyError(f'Grouping key(s) {missing} not found in metadata')
    return joined.merge(metadata[[DOC_ID] + need], on=DOC_ID, how='inner')


def _aggregate(joined: pd.DataFrame, keys: Sequence[str]) -> pd.DataFrame:
    keys = list(keys)
    out = (joined.groupby(keys, sort=True)
           .agg(sentiment=(VALUE, 'sum'), n_words=(WORD, 'size'))
           .reset_index())
    return out


def document_sentiment(tokens: pd.DataFrame, lexicon: Lexicon) -> pd.DataFrame:
    """Sum of lexicon values per document.

    Documents without any lexicon word are absent from the result.
    """
    return _aggregate(join_sentiment(tokens, lexicon), [DOC_ID])


def group_sentiment(tokens: pd.DataFrame, lexicon: Lexicon, metadata: Optional[pd.DataFrame] = None,
                    keys: Sequence[str] = GROUP_KEYS) -> pd.DataFrame:
    """Sum of lexicon values per group, e.g. per (rating, day)."""
    joined = _with_metadata(join_sentiment(tokens, lexicon), metadata, keys)
    return _aggregate(joined, keys)


def rollup(scores: pd.DataFrame, metadata: pd.DataFrame, keys: Sequence[str] = GROUP_KEYS) -> pd.DataFrame:
    """Roll per-document scores up to groups; equals group_sentiment on the same tokens."""
    keys = list(keys)
    merged = scores.merge(metadata[[DOC_ID] + keys], on=DOC_ID, how='inner')
    return (merged.groupby(keys, sort=True)
            .agg(sentiment=(SENTIMENT, 'sum'), n_words=('n_words', 'sum'))
            .reset_index())


def net_sentiment(tokens: pd.DataFrame, lexicon: Lexicon, metadata: Optional[pd.DataFrame] = None,
                  keys: Sequence[str] = GROUP_KEYS) -> pd.DataFrame:
    """Positive and negative word counts per group and net = positive - negative."""
    keys = list(keys)
    joined = _with_metadata(join_sentiment(tokens, lexicon), metadata, keys)
    counts = (joined.groupby(keys + [SENTIMENT]).size()
              .unstack(SENTIMENT, fill_value=0))
    for col in (POSITIVE, NEGATIVE):
        if col not in counts.columns:
            counts[col] = 0
    out = counts[[POSITIVE, NEGATIVE]].reset_index()
    out.columns.name = None
    out['net'] = out[POSITIVE] - out[NEGATIVE]
    return out


def word_contributions(tokens: pd.DataFrame, lexicon: Lexicon, n: int = 10) -> pd.DataFrame:
    """Most frequent lexicon words for each sentiment label and their summed value."""
    joined = join_sentiment(tokens, lexicon)
    tab = (joined.groupby([SENTIMENT, WORD])
           .agg(n=(WORD, 'size'), contribution=(VALUE, 'sum'))
           .reset_index()
           .sort_values([SENTIMENT, 'n', WORD], ascending=[True, False, True]))
    return tab.groupby(SENTIMENT, sort=True).head(n).reset_index(drop=True)
