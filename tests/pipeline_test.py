import json
import os

import pandas as pd
import pytest

from blogtext.cli import main, parse_k_grid
from blogtext.config import config_from_dict, load_config, TopicModelConfig, PreprocessConfig
from blogtext.data import load_corpus, iter_documents
from blogtext.pipeline import run_analysis

LEXICON_CSV = 'word,value\ngood,3\nbad,-3\nwar,-2\njobs,1\ndeficit,-1\n'


@pytest.fixture
def lexicon_csv(tmp_path) -> str:
    path = tmp_path / 'toy_lexicon.csv'
    path.write_text(LEXICON_CSV)
    return str(path)


def _config(blog_csv, lexicon_csv, out_dir, **topic_model):
    tm = {'K': 2, 'prevalence': '~ rating + day', 'seed': 0, 'top_words': 4}
    tm.update(topic_model)
    return config_from_dict({
        'data': {'path': blog_csv},
        'preprocess': {'stop_words': 'none', 'extra_stop_words': ['news'], 'lower_thresh': 1},
        'sentiment': {'lexicon': lexicon_csv},
        'topic_model': tm,
        'output_dir': str(out_dir),
    })


def test_load_corpus_normalises_columns(blog_csv):
    docs = load_corpus(blog_csv)
    assert list(docs.columns[:4]) == ['doc_id', 'text', 'rating', 'day']
    assert 'blog' in docs.columns
    first = next(iter_documents(docs))
    assert first.doc_id == 'doc_0'
    assert first.metadata['rating'] == 'Conservative'


def test_load_corpus_missing_column(tmp_path):
    path = tmp_path / 'bad.csv'
    pd.DataFrame({'documents': ['a'], 'rating': ['Liberal']}).to_csv(path, index=False)
    with pytest.raises(KeyError):
        load_corpus(str(path))


def test_load_corpus_drops_blank_text_and_parses_dates(tmp_path):
    path = tmp_path / 'dates.csv'
    pd.DataFrame({
        'docname': ['a', 'b', 'c'],
        'documents': ['surge in iraq', '   ', 'tax cuts'],
        'rating': ['Conservative', 'Liberal', 'Liberal'],
        'day': ['2008-01-02', '2008-01-03', '2008-02-01'],
    }).to_csv(path, index=False)
    docs = load_corpus(str(path))
    assert docs['doc_id'].tolist() == ['a', 'c']
    assert docs['day'].tolist() == [2.0, 32.0]


def test_load_corpus_keeps_integer_days_with_gaps(tmp_path):
    path = tmp_path / 'gaps.csv'
    pd.DataFrame({
        'docname': ['a', 'b', 'c'],
        'documents': ['surge in iraq', 'tax cuts', 'budget deficit'],
        'rating': ['Conservative', 'Liberal', 'Liberal'],
        'day': [10, 200, None],
    }).to_csv(path, index=False)
    days = load_corpus(str(path))['day']
    assert days.iloc[:2].tolist() == [10.0, 200.0]
    assert days.isna().iloc[2]


def test_run_analysis_writes_artifacts(blog_csv, lexicon_csv, tmp_path):
    out_dir = tmp_path / 'out'
    arts = run_analysis(_config(blog_csv, lexicon_csv, out_dir))
    for path in arts.values():
        assert os.path.exists(path)
    doc_scores = pd.read_csv(out_dir / 'document_sentiment.csv')
    assert {'doc_id', 'sentiment', 'n_words'} <= set(doc_scores.columns)
    with open(out_dir / 'topic_labels.json', encoding='utf-8') as f:
        labels = json.load(f)
    assert set(labels) == {'Topic_1', 'Topic_2'}
    assert len(labels['Topic_1']['frex']) == 4
    effects = pd.read_csv(out_dir / 'prevalence_effects.csv')
    assert set(effects['topic']) == {1, 2}
    assert 'prevalence_effect_png' in arts


def test_run_analysis_with_k_search(blog_csv, lexicon_csv, tmp_path):
    out_dir = tmp_path / 'search'
    arts = run_analysis(_config(blog_csv, lexicon_csv, out_dir, search_k=[2, 3], prevalence=None))
    sel = pd.read_csv(arts['model_selection'])
    assert sel['K'].tolist() == [2, 3]
    assert 'prevalence_effects' not in arts


def test_cli_overrides(blog_csv, lexicon_csv, tmp_path):
    cfg_path = tmp_path / 'run.yaml'
    cfg_path.write_text(
        'data:\n  path: missing.csv\n'
        'preprocess:\n  stop_words: none\n  lower_thresh: 1\n'
        f'sentiment:\n  lexicon: {lexicon_csv}\n'
        'topic_model:\n  K: 5\n  prevalence: "~ rating + day"\n'
    )
    out_dir = tmp_path / 'cli_out'
    main(['--config', str(cfg_path), '--data', blog_csv, '--output', str(out_dir), '--topics', '2'])
    props = pd.read_csv(out_dir / 'topic_proportions.csv')
    assert len(props) == 2


def test_parse_k_grid():
    assert parse_k_grid('5, 10,15') == [5, 10, 15]


def test_config_validation(tmp_path):
    with pytest.raises(ValueError):
        TopicModelConfig(method='lda', init='spectral')
    with pytest.raises(ValueError):
        TopicModelConfig(K=1)
    with pytest.raises(ValueError):
        PreprocessConfig(lower_thresh=5, upper_thresh=3)
    with pytest.raises(ValueError):
        config_from_dict({'topic_model': {'topics': 4}})
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / 'nope.yaml'))


def test_default_config_loads():
    config = load_config('default')
    assert config.topic_model.K == 20
    assert config.topic_model.prevalence == '~ rating + s(day)'
    assert config.sentiment.group_keys == ['rating', 'day']


def test_run_analysis_without_lexicon_matches(blog_csv, tmp_path):
    lex_path = tmp_path / 'unmatched.csv'
    lex_path.write_text('word,value\nsplendid,2\nawful,-2\n')
    out_dir = tmp_path / 'nomatch'
    arts = run_analysis(_config(blog_csv, str(lex_path), out_dir))
    assert 'word_contributions_png' not in arts
    assert 'net_sentiment_png' not in arts
    assert pd.read_csv(out_dir / 'document_sentiment.csv').empty
    assert os.path.exists(arts['topic_summary_png'])
