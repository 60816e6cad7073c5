import os
from typing import List, Optional

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

from .data import DOC_ID, RATING, DAY

plt.rcParams['axes.unicode_minus'] = False
sns.set_style('whitegrid')

# Conventional party colours for the two ratings in the blog corpus
RATING_PALETTE = {'Liberal': '#2563eb', 'Conservative': '#ef4444'}


def _palette(levels) -> Optional[dict]:
    levels = list(levels)
    if set(levels) <= set(RATING_PALETTE):
        return {k: RATING_PALETTE[k] for k in levels}
    return None


def _save(fig, out_path: str) -> str:
    d = os.path.dirname(out_path)
    if d:
        os.makedirs(d, exist_ok=True)
    plt.savefig(out_path, bbox_inches='tight')
    plt.close(fig)
    return out_path


def plot_document_sentiment(scores: pd.DataFrame, out_path: str, max_docs: int = 50) -> str:
    # Largest absolute scores only, a 5k-doc bar chart is unreadable
    tab = scores.reindex(scores['sentiment'].abs().sort_values(ascending=False).index).head(max_docs)
    tab = tab.sort_values('sentiment')
    fig, ax = plt.subplots(figsize=(10, max(4, 0.2 * len(tab))), dpi=150)
    colors = np.where(tab['sentiment'] >= 0, '#10b981', '#ef4444')
    ax.barh(tab[DOC_ID].astype(str), tab['sentiment'], color=colors)
    ax.set_title('Sentiment by document')
    ax.set_xlabel('Summed lexicon value')
    ax.set_ylabel('')
    return _save(fig, out_path)


def plot_sentiment_over_time(scores: pd.DataFrame, out_path: str, value: str = 'sentiment',
                             x: str = DAY, hue: str = RATING) -> str:
    fig, ax = plt.subplots(figsize=(12, 5), dpi=150)
    sns.lineplot(data=scores, x=x, y=value, hue=hue, palette=_palette(scores[hue].unique()), ax=ax)
    ax.axhline(0, color='grey', lw=0.8)
    ax.set_title(f'{value.capitalize()} over time by {hue}')
    ax.set_xlabel(x)
    ax.set_ylabel(value)
    return _save(fig, out_path)


def plot_sentiment_points(scores: pd.DataFrame, out_path: str, value: str = 'net',
                          x: str = DAY, hue: str = RATING) -> str:
    """Scatter of per-day scores with one facet per rating."""
    levels = sorted(scores[hue].unique())
    fig, axes = plt.subplots(1, len(levels), figsize=(6 * len(levels), 5), dpi=150, sharey=True,
                             squeeze=False)
    pal = _palette(levels) or {}
    for ax, level in zip(axes[0], levels):
        sub = scores[scores[hue] == level]
        ax.scatter(sub[x], sub[value], s=14, alpha=0.7, color=pal.get(level, '#3b82f6'))
        ax.axhline(0, color='grey', lw=0.8)
        ax.set_title(str(level))
        ax.set_xlabel(x)
    axes[0][0].set_ylabel(value)
    fig.suptitle(f'{value.capitalize()} sentiment per {x}')
    return _save(fig, out_path)


def plot_word_contributions(contrib: pd.DataFrame, out_path: str) -> str:
    labels = sorted(contrib['sentiment'].unique())
    fig, axes = plt.subplots(1, len(labels), figsize=(6 * len(labels), 6), dpi=150, squeeze=False)
    for ax, label in zip(axes[0], labels):
        sub = contrib[contrib['sentiment'] == label].sort_values('n')
        ax.barh(sub['word'], sub['n'], color='#10b981' if label == 'positive' else '#ef4444')
        ax.set_title(f'Top {label} words')
        ax.set_xlabel('Count')
    fig.subplots_adjust(wspace=0.4)
    return _save(fig, out_path)


def plot_top_words(vocab: List[str], beta: np.ndarray, out_path: str, title: str = 'Top words per topic',
                   topn: int = 10) -> str:
    """
    beta: K x V
    """
    K = beta.shape[0]
    fig, axes = plt.subplots(K, 1, figsize=(12, 3 * K), dpi=150, constrained_layout=True, squeeze=False)
    for k in range(K):
        b = beta[k]
        idx = np.argsort(b)[-topn:][::-1]
        ax = axes[k][0]
        ax.bar([vocab[i] for i in idx], b[idx], color='#5178c6')
        ax.set_title(f'Topic {k + 1}: top {topn} words')
        plt.setp(ax.get_xticklabels(), rotation=45, ha='right')
    fig.suptitle(title, fontsize=14)
    return _save(fig, out_path)


def plot_topic_summary(proportions: pd.DataFrame, out_path: str) -> str:
    """Expected topic proportions labelled with each topic's top words."""
    tab = proportions.sort_values('proportion')
    fig, ax = plt.subplots(figsize=(10, max(4, 0.45 * len(tab))), dpi=150)
    ax.barh([f'Topic {t}' for t in tab['topic']], tab['proportion'], color='#3b82f6')
    xmax = tab['proportion'].max()
    for i, (p, words) in enumerate(zip(tab['proportion'], tab['top_words'])):
        ax.text(p + xmax * 0.01, i, words, va='center', fontsize=9)
    ax.set_xlim(0, xmax * 1.8)
    ax.set_title('Top topics')
    ax.set_xlabel('Expected topic proportion')
    return _save(fig, out_path)


def plot_prevalence_effect(pred: pd.DataFrame, covariate: str, out_path: str,
                           by: Optional[str] = None) -> str:
    topics = sorted(pred['topic'].unique())
    fig, axes = plt.subplots(len(topics), 1, figsize=(10, 3.5 * len(topics)), dpi=150, squeeze=False)
    for ax, t in zip(axes[:, 0], topics):
        sub = pred[pred['topic'] == t]
        groups = [(None, sub)] if by is None else list(sub.groupby(by))
        pal = _palette([g for g, _ in groups if g is not None]) or {}
        for level, g in groups:
            color = pal.get(level, None)
            ax.plot(g[covariate], g['estimate'], lw=2, color=color, label=level)
            ax.fill_between(g[covariate], g['ci_lower'], g['ci_upper'], alpha=0.2, color=color)
        ax.set_title(f'Topic {t}')
        ax.set_xlabel(covariate)
        ax.set_ylabel('Expected proportion')
        if by is not None:
            ax.legend(frameon=False)
    plt.tight_layout()
    return _save(fig, out_path)
