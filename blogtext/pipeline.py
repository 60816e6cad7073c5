import os
import json
import logging
from typing import Dict

import pandas as pd

from .config import AnalysisConfig
from .data import load_corpus, metadata_table, DOC_ID, TEXT
from .dtm import prepare_documents
from .evaluation import search_k, best_k
from .lexicons import get_lexicon
from .plotting import (plot_document_sentiment, plot_sentiment_over_time, plot_sentiment_points,
                       plot_word_contributions, plot_top_words, plot_topic_summary, plot_prevalence_effect)
from .sentiment import document_sentiment, group_sentiment, net_sentiment, word_contributions
from .text_preprocess import tokenize_documents, load_stop_words, remove_stop_words, process_documents
from .topic_model import fit_topic_model

logger = logging.getLogger(__name__)


def _write_csv(df: pd.DataFrame, out_dir: str, name: str) -> str:
    path = os.path.join(out_dir, name)
    df.to_csv(path, index=False)
    logger.info(f'Wrote {len(df)} rows to {path}')
    return path


def _write_json(obj, out_dir: str, name: str) -> str:
    path = os.path.join(out_dir, name)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)
    logger.info(f'Wrote {path}')
    return path


def run_sentiment(docs: pd.DataFrame, stop_words: pd.DataFrame, config: AnalysisConfig) -> Dict[str, str]:
    out_dir = config.output_dir
    sc = config.sentiment
    meta = metadata_table(docs)

    tokens = remove_stop_words(tokenize_documents(docs), stop_words)
    lexicon = get_lexicon(sc.lexicon)

    doc_scores = document_sentiment(tokens, lexicon)
    grp_scores = group_sentiment(tokens, lexicon, meta, keys=sc.group_keys)
    net = net_sentiment(tokens, lexicon, meta, keys=sc.group_keys)
    contrib = word_contributions(tokens, lexicon, n=sc.top_words)

    arts = {
        'document_sentiment': _write_csv(doc_scores, out_dir, 'document_sentiment.csv'),
        'group_sentiment': _write_csv(grp_scores, out_dir, 'group_sentiment.csv'),
        'net_sentiment': _write_csv(net, out_dir, 'net_sentiment.csv'),
        'word_contributions': _write_csv(contrib, out_dir, 'word_contributions.csv'),
    }
    if doc_scores.empty:
        logger.warning(f'No token matched lexicon {lexicon.name}; skipping sentiment plots')
        return arts
    arts['document_sentiment_png'] = plot_document_sentiment(doc_scores, os.path.join(out_dir, 'document_sentiment.png'))
    arts['word_contributions_png'] = plot_word_contributions(contrib, os.path.join(out_dir, 'word_contributions.png'))
    # time plots need a time axis and a hue
    if len(sc.group_keys) == 2:
        hue, x = sc.group_keys
        arts['sentiment_over_time_png'] = plot_sentiment_over_time(
            grp_scores, os.path.join(out_dir, 'sentiment_over_time.png'), x=x, hue=hue)
        arts['net_sentiment_png'] = plot_sentiment_points(
            net, os.path.join(out_dir, 'net_sentiment.png'), x=x, hue=hue)
    return arts


def run_topics(docs: pd.DataFrame, stop_words: pd.DataFrame, config: AnalysisConfig) -> Dict[str, str]:
    out_dir = config.output_dir
    pc = config.preprocess
    tc = config.topic_model

    token_lists = process_documents(docs, stop_words, min_length=pc.min_word_length, stem=pc.stem)
    dtm = prepare_documents(token_lists, metadata_table(docs), lower_thresh=pc.lower_thresh,
                            upper_thresh=pc.upper_thresh)
    arts = {}

    K = tc.K
    if tc.search_k:
        sel = search_k(dtm, tc.search_k, init=tc.init, method=tc.method, seed=tc.seed, max_iter=tc.max_iter)
        arts['model_selection'] = _write_csv(sel, out_dir, 'model_selection.csv')
        K = best_k(sel)
        logger.info(f'Selected K={K} from {tc.search_k}')

    model = fit_topic_model(dtm, K, prevalence=tc.prevalence, init=tc.init, method=tc.method,
                            seed=tc.seed, max_iter=tc.max_iter)

    texts = docs.set_index(DOC_ID).loc[dtm.metadata[DOC_ID], TEXT].tolist()
    labels = model.label_topics(tc.top_words)
    arts['topic_labels'] = _write_json(
        {f'Topic_{k + 1}': {m: words[k] for m, words in labels.items()} for k in range(model.K)},
        out_dir, 'topic_labels.json')
    thoughts = model.find_thoughts(texts, n=tc.thoughts_per_topic)
    arts['topic_thoughts'] = _write_json(
        {f'Topic_{t}': g.drop(columns=['topic']).to_dict('records') for t, g in thoughts.groupby('topic')},
        out_dir, 'topic_thoughts.json')
    props = model.topic_proportions()
    arts['topic_proportions'] = _write_csv(props, out_dir, 'topic_proportions.csv')
    arts['topic_summary_png'] = plot_topic_summary(props, os.path.join(out_dir, 'topic_summary.png'))
    arts['top_words_png'] = plot_top_words(model.vocab, model.beta, os.path.join(out_dir, 'top_words.png'))

    if tc.prevalence:
        arts['prevalence_effects'] = _write_csv(model.estimate_effect(), out_dir, 'prevalence_effects.csv')
        if tc.effect_covariate:
            pred = model.predict_prevalence(tc.effect_covariate, by=tc.effect_by)
            arts['prevalence_effect_png'] = plot_prevalence_effect(
                pred, tc.effect_covariate, os.path.join(out_dir, 'prevalence_effect.png'), by=tc.effect_by)
    return arts


def run_analysis(config: AnalysisConfig) -> Dict[str, str]:
    """Run the whole workflow once and return the written artifact paths."""
    os.makedirs(config.output_dir, exist_ok=True)
    dc = config.data
    docs = load_corpus(dc.path, text_column=dc.text_column, id_column=dc.id_column,
                       rating_column=dc.rating_column, day_column=dc.day_column)
    stop_words = load_stop_words(config.preprocess.stop_words, config.preprocess.extra_stop_words)

    arts = run_sentiment(docs, stop_words, config)
    arts.update(run_topics(docs, stop_words, config))
    logger.info(f'All outputs written to {config.output_dir}')
    return arts
