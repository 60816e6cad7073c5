import pandas as pd

from blogtext.data import documents_from_texts
from blogtext.text_preprocess import (tokenize_documents, remove_stop_words, count_words,
                                      load_stop_words, process_documents, tokenize_text)


def test_tokenize_lowercases_and_strips_punctuation():
    assert tokenize_text("McCain's plan, Obama's PLAN!") == ["mccain's", 'plan', "obama's", 'plan']
    assert tokenize_text('Read http://example.com now') == ['read', 'now']


def test_tokenize_documents_long_format():
    docs = documents_from_texts(['Hello, world', '...', 'world peace'])
    tokens = tokenize_documents(docs)
    assert list(tokens.columns) == ['doc_id', 'word']
    assert tokens['word'].tolist() == ['hello', 'world', 'world', 'peace']
    # a document with no extractable token yields zero rows
    assert 'doc_1' not in set(tokens['doc_id'])


def test_stop_word_removal_never_increases_counts():
    docs = documents_from_texts(['the war and the surge', 'a tax on the rich', 'of the'])
    tokens = tokenize_documents(docs)
    filtered = remove_stop_words(tokens, {'the', 'and', 'a', 'on', 'of'})
    before = tokens.groupby('doc_id').size()
    after = filtered.groupby('doc_id').size().reindex(before.index, fill_value=0)
    assert (after <= before).all()
    assert filtered['word'].tolist() == ['war', 'surge', 'tax', 'rich']


def test_remove_stop_words_accepts_table():
    tokens = pd.DataFrame({'doc_id': ['d'] * 3, 'word': ['the', 'senate', 'vote']})
    stops = load_stop_words('none', extra=['The', 'vote'])
    out = remove_stop_words(tokens, stops)
    assert out['word'].tolist() == ['senate']
    assert set(stops['lexicon']) == {'custom'}


def test_count_words_sorted_by_frequency():
    tokens = pd.DataFrame({'doc_id': ['a', 'a', 'b', 'b', 'b'],
                           'word': ['tax', 'war', 'tax', 'tax', 'war']})
    counts = count_words(tokens)
    assert counts.iloc[0].to_dict() == {'word': 'tax', 'n': 3}
    by_doc = count_words(tokens, by=['doc_id'])
    assert by_doc[by_doc['doc_id'] == 'b'].iloc[0]['word'] == 'tax'


def test_tokenization_is_deterministic(blog_docs):
    pd.testing.assert_frame_equal(tokenize_documents(blog_docs), tokenize_documents(blog_docs))


def test_process_documents_filters_and_stems():
    docs = documents_from_texts(['The 3 soldiers were running in 2008!', 'of an'])
    no_stem = process_documents(docs, {'the', 'were', 'of', 'an'}, stem=False)
    assert no_stem == [['soldiers', 'running'], []]
    stemmed = process_documents(docs, {'the', 'were', 'of', 'an'}, stem=True)
    assert stemmed[0] == ['soldier', 'run']


def test_process_documents_min_length():
    docs = documents_from_texts(['go to war now'])
    assert process_documents(docs, set(), min_length=3, stem=False) == [['war', 'now']]
