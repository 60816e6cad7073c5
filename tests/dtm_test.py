import pandas as pd
import pytest

from blogtext.dtm import prepare_documents


def _meta(n):
    return pd.DataFrame({'doc_id': [f'd{i}' for i in range(n)], 'rating': ['Liberal'] * n, 'day': range(n)})


def test_lower_thresh_prunes_rare_words():
    tokens = [['tax', 'war', 'obama'], ['tax', 'war'], ['tax', 'mccain']]
    dtm = prepare_documents(tokens, _meta(3), lower_thresh=1)
    assert dtm.vocab == ['tax', 'war']
    assert sorted(dtm.words_removed) == ['mccain', 'obama']
    assert dtm.counts.toarray().tolist() == [[1, 1], [1, 1], [1, 0]]
    assert dtm.n_tokens == 5


def test_empty_documents_dropped_with_metadata():
    tokens = [['tax', 'war'], ['palin'], ['tax', 'war', 'war'], []]
    dtm = prepare_documents(tokens, _meta(4), lower_thresh=1)
    assert dtm.docs_removed == [1, 3]
    assert dtm.metadata['doc_id'].tolist() == ['d0', 'd2']
    assert dtm.n_docs == len(dtm.metadata) == 2
    assert dtm.corpus_counts.tolist() == [2, 3]


def test_upper_thresh_prunes_ubiquitous_words():
    tokens = [['tax', 'war'], ['tax', 'war'], ['tax', 'iraq'], ['tax', 'iraq']]
    dtm = prepare_documents(tokens, _meta(4), lower_thresh=0, upper_thresh=3)
    assert 'tax' not in dtm.vocab
    assert dtm.doc_frequency().tolist() == [2, 2]


def test_prepare_documents_errors():
    with pytest.raises(ValueError):
        prepare_documents([['tax']], _meta(2))
    with pytest.raises(ValueError):
        prepare_documents([['tax'], ['war']], _meta(2), lower_thresh=5)
