import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import pandas as pd
import scipy.sparse as sp
from sklearn.feature_extraction.text import CountVectorizer

logger = logging.getLogger(__name__)


@dataclass
class DocumentTermMatrix:
    counts: sp.csr_matrix       # D x V
    vocab: List[str]
    metadata: pd.DataFrame      # D rows, aligned with counts
    words_removed: List[str] = field(default_factory=list)
    docs_removed: List[int] = field(default_factory=list)  # row positions in the input

    @property
    def n_docs(self) -> int:
        return self.counts.shape[0]

    @property
    def n_words(self) -> int:
        return self.counts.shape[1]

    @property
    def n_tokens(self) -> int:
        return int(self.counts.sum())

    @property
    def corpus_counts(self) -> np.ndarray:
        return np.asarray(self.counts.sum(axis=0)).ravel()

    def doc_frequency(self) -> np.ndarray:
        return np.asarray((self.counts > 0).sum(axis=0)).ravel()


def _identity(tokens):
    return tokens


def prepare_documents(token_lists: List[List[str]], metadata: pd.DataFrame, lower_thresh: int = 1,
                      upper_thresh: Optional[int] = None) -> DocumentTermMatrix:
    """Build the pruned document-term matrix and keep metadata aligned.

    Words that appear in `lower_thresh` or fewer documents are dropped, as are
    words in more than `upper_thresh` documents when it is set. Documents with
    no remaining words are then removed together with their metadata rows.
    """
    if len(token_lists) != len(metadata):
        raise ValueError(f'{len(token_lists)} token lists but {len(metadata)} metadata rows')
    if lower_thresh < 0:
        raise ValueError(f'lower_thresh must be >= 0, got {lower_thresh}')

    vectorizer = CountVectorizer(analyzer=_identity, lowercase=False)
    counts = vectorizer.fit_transform(token_lists).tocsr()
    vocab_all = np.asarray(vectorizer.get_feature_names_out())
    if counts.shape[1] == 0:
        raise ValueError('No tokens in corpus')

    doc_freq = np.asarray((counts > 0).sum(axis=0)).ravel()
    keep = doc_freq > lower_thresh
    if upper_thresh is not None:
        keep &= doc_freq <= upper_thresh
    words_removed = vocab_all[~keep].tolist()
    counts = counts[:, np.flatnonzero(keep)]
    vocab = vocab_all[keep].tolist()
    if not vocab:
        raise ValueError(f'All {len(vocab_all)} words removed by thresholds '
                         f'(lower={lower_thresh}, upper={upper_thresh})')

    row_totals = np.asarray(counts.sum(axis=1)).ravel()
    keep_docs = row_totals > 0
    docs_removed = np.flatnonzero(~keep_docs).tolist()
    counts = counts[np.flatnonzero(keep_docs), :]
    meta = metadata.iloc[np.flatnonzero(keep_docs)].reset_index(drop=True)

    logger.info(f'Removed {len(words_removed)} of {len(vocab_all)} terms '
                f'({len(vocab)} remain) and {len(docs_removed)} of {len(token_lists)} documents')
    return DocumentTermMatrix(counts=sp.csr_matrix(counts), vocab=vocab, metadata=meta,
                              words_removed=words_removed, docs_removed=docs_removed)
