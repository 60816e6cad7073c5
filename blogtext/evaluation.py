import logging
from typing import Sequence

import numpy as np
import pandas as pd

from .dtm import DocumentTermMatrix
from .topic_model import TopicModel, fit_topic_model

logger = logging.getLogger(__name__)


def topic_coherence_umass(model: TopicModel, dtm: DocumentTermMatrix, topn: int = 10) -> np.ndarray:
    """UMass coherence of each topic's top words (higher is better)."""
    B = (dtm.counts > 0).astype(np.int64).tocsc()
    df_w = np.asarray(B.sum(axis=0)).ravel()
    index = {w: i for i, w in enumerate(dtm.vocab)}
    coherences = []
    for words in model.top_words(topn, 'prob'):
        idxs = [index[w] for w in words]
        score = 0.0
        count = 0
        for i in range(1, len(idxs)):
            for j in range(i):
                w_i = idxs[i]; w_j = idxs[j]
                # co-doc frequency
                D_ij = int(B[:, w_i].multiply(B[:, w_j]).sum())
                score += np.log((D_ij + 1) / max(df_w[w_j], 1))
                count += 1
        coherences.append(score / max(1, count))
    return np.array(coherences)


def topic_exclusivity(model: TopicModel, topn: int = 10, weight: float = 0.7) -> np.ndarray:
    """Sum of FREX over each topic's top words by probability."""
    frex = model.frex_scores(weight=weight)
    out = []
    for k in range(model.K):
        idx = np.argsort(-model.beta[k])[:topn]
        out.append(float(frex[k, idx].sum()))
    return np.array(out)


def search_k(dtm: DocumentTermMatrix, grid: Sequence[int], init: str = 'spectral', method: str = 'nmf',
             seed: int = 0, topn: int = 10, max_iter: int = 500) -> pd.DataFrame:
    """Fit one model per K and tabulate coherence and exclusivity (and perplexity for LDA)."""
    results = []
    for K in grid:
        model = fit_topic_model(dtm, K, init=init, method=method, seed=seed, max_iter=max_iter)
        row = {
            'K': K,
            'coherence_umass': float(topic_coherence_umass(model, dtm, topn).mean()),
            'exclusivity': float(topic_exclusivity(model, topn).mean()),
        }
        if method == 'lda':
            row['perplexity'] = float(model.estimator.perplexity(dtm.counts))
        logger.info(f'K={K}: ' + ', '.join(f'{k}={v:.4f}' for k, v in row.items() if k != 'K'))
        results.append(row)
    return pd.DataFrame(results)


def best_k(results: pd.DataFrame) -> int:
    # Rank by coherence and exclusivity; ties go to the smaller K
    res = results.copy()
    res['rank'] = (res['coherence_umass'].rank(ascending=False, method='min')
                   + res['exclusivity'].rank(ascending=False, method='min'))
    best = res.sort_values(['rank', 'K'], ascending=[True, True]).iloc[0]
    return int(best['K'])
