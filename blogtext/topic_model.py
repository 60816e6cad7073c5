import re
import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from sklearn.decomposition import NMF, LatentDirichletAllocation

from .dtm import DocumentTermMatrix

logger = logging.getLogger(__name__)

METHODS = ('nmf', 'lda')
INITS = ('spectral', 'random')
# s(x) in a prevalence formula becomes a B-spline basis with this many df
SPLINE_DF = 10
_RESPONSE = 'topic_prop'


def prevalence_rhs(formula: str) -> str:
    """Right-hand side of a prevalence formula in patsy syntax.

    Accepts '~ rating + s(day)' style input; s(x) is rewritten to bs(x, df=10).
    """
    rhs = formula.strip()
    if '~' in rhs:
        rhs = rhs.split('~', 1)[1].strip()
    if not rhs:
        raise ValueError(f'Empty prevalence formula: {formula!r}')
    return re.sub(r'\bs\(\s*(\w+)\s*\)', rf'bs(\1, df={SPLINE_DF})', rhs)


class TopicModel:
    def __init__(self, K: int, vocab: List[str], theta: np.ndarray, beta: np.ndarray,
                 metadata: pd.DataFrame, word_counts: np.ndarray, estimator,
                 prevalence: Optional[str] = None, method: str = 'nmf', init: str = 'spectral',
                 seed: int = 0):
        """
        Args:
          K: number of topics
          vocab: list of V terms
          theta: (D x K) topic proportions per document, rows sum to 1
          beta: (K x V) word distribution per topic, rows sum to 1
          metadata: D rows of document covariates, aligned with theta
          word_counts: (V,) corpus frequency of each term
          estimator: the fitted scikit-learn decomposition
        """
        self.K = K
        self.vocab = vocab
        self.V = len(vocab)
        self.D = theta.shape[0]
        self.theta = theta
        self.beta = beta
        self.metadata = metadata
        self.word_counts = word_counts
        self.estimator = estimator
        self.prevalence = prevalence
        self.method = method
        self.init = init
        self.seed = seed
        self._effects = {}

    def __repr__(self) -> str:
        return (f'TopicModel(K={self.K}, method={self.method!r}, init={self.init!r}, '
                f'D={self.D}, V={self.V}, prevalence={self.prevalence!r})')

    @property
    def log_beta(self) -> np.ndarray:
        return np.log(np.clip(self.beta, 1e-300, None))

    # ------------------------------------------------------------------ words

    def _rank_prob(self) -> np.ndarray:
        return self.beta

    def frex_scores(self, weight: float = 0.5) -> np.ndarray:
        lb = self.log_beta
        # exclusivity: share of each word's mass owned by the topic
        excl = lb - np.logaddexp.reduce(lb, axis=0, keepdims=True)
        freq_score = _row_ecdf(lb)
        excl_score = _row_ecdf(excl)
        return 1.0 / (weight / freq_score + (1.0 - weight) / excl_score)

    def _rank_lift(self) -> np.ndarray:
        freq = self.word_counts / max(self.word_counts.sum(), 1)
        return self.beta / np.clip(freq, 1e-12, None)[None, :]

    def _rank_score(self) -> np.ndarray:
        lb = self.log_beta
        return self.beta * (lb - lb.mean(axis=0, keepdims=True))

    def top_words(self, n: int = 10, metric: str = 'prob') -> List[List[str]]:
        scorers = {'prob': self._rank_prob, 'frex': self.frex_scores,
                   'lift': self._rank_lift, 'score': self._rank_score}
        if metric not in scorers:
            raise ValueError(f'Unknown metric: {metric}. Must be one of {list(scorers)}')
        scores = scorers[metric]()
        out = []
        for k in range(self.K):
            idxs = np.argsort(-scores[k], kind='stable')[:n]
            out.append([self.vocab[i] for i in idxs])
        return out

    def label_topics(self, n: int = 7) -> Dict[str, List[List[str]]]:
        """Top words for each topic under prob, frex, lift and score."""
        return {m: self.top_words(n, m) for m in ('prob', 'frex', 'lift', 'score')}

    def labels_table(self, n: int = 7) -> pd.DataFrame:
        labels = self.label_topics(n)
        rows = []
        for k in range(self.K):
            row = {'topic': k + 1}
            for metric, words in labels.items():
                row[metric] = ', '.join(words[k])
            rows.append(row)
        return pd.DataFrame(rows)

    # -------------------------------------------------------------- documents

    def find_thoughts(self, texts: Sequence[str], topics: Optional[Sequence[int]] = None, n: int = 3,
                      snippet_chars: int = 300) -> pd.DataFrame:
        """Documents with the highest proportion of each topic (topics are 1-based)."""
        if len(texts) != self.D:
            raise ValueError(f'Got {len(texts)} texts for {self.D} modelled documents')
        topics = list(topics) if topics is not None else list(range(1, self.K + 1))
        doc_ids = self.metadata['doc_id'].tolist() if 'doc_id' in self.metadata.columns else list(range(self.D))
        rows = []
        for t in topics:
            if not 1 <= t <= self.K:
                raise ValueError(f'Topic {t} out of range 1..{self.K}')
            idx = np.argsort(-self.theta[:, t - 1], kind='stable')[:n]
            for rank, d in enumerate(idx, start=1):
                rows.append({'topic': t, 'rank': rank, 'doc_id': doc_ids[d],
                             'theta': float(self.theta[d, t - 1]),
                             'snippet': str(texts[d])[:snippet_chars]})
        return pd.DataFrame(rows)

    def topic_proportions(self, n_words: int = 3) -> pd.DataFrame:
        """Expected topic proportions across the corpus, largest first."""
        props = self.theta.mean(axis=0)
        words = self.top_words(n_words, 'prob')
        tab = pd.DataFrame({'topic': np.arange(1, self.K + 1), 'proportion': props,
                            'top_words': [', '.join(w) for w in words]})
        return tab.sort_values('proportion', ascending=False, kind='stable').reset_index(drop=True)

    # ------------------------------------------------------------- covariates

    def _formula(self, formula: Optional[str]) -> str:
        formula = formula or self.prevalence
        if not formula:
            raise ValueError('No prevalence formula given and the model was fit without one')
        return f'{_RESPONSE} ~ {prevalence_rhs(formula)}'

    def _ols(self, k: int, formula: str):
        key = (k, formula)
        if key not in self._effects:
            data = self.metadata.copy()
            data[_RESPONSE] = self.theta[:, k]
            self._effects[key] = smf.ols(formula, data=data).fit()
        return self._effects[key]

    def estimate_effect(self, formula: Optional[str] = None) -> pd.DataFrame:
        """Regress each topic's proportion on the prevalence covariates.

        Returns one row per (topic, term) with estimate, std_error and p_value.
        """
        f = self._formula(formula)
        rows = []
        for k in range(self.K):
            res = self._ols(k, f)
            for term, est, se, p in zip(res.params.index, res.params.values, res.bse.values, res.pvalues.values):
                rows.append({'topic': k + 1, 'term': term, 'estimate': float(est),
                             'std_error': float(se), 'p_value': float(p)})
        return pd.DataFrame(rows)

    def _reference_row(self, at: Optional[Dict[str, object]]) -> Dict[str, object]:
        ref = {}
        for col in self.metadata.columns:
            s = self.metadata[col]
            if pd.api.types.is_numeric_dtype(s):
                ref[col] = float(s.mean())
            else:
                mode = s.mode()
                ref[col] = mode.iloc[0] if len(mode) else None
        ref.update(at or {})
        return ref

    def predict_prevalence(self, covariate: str, values: Optional[Sequence] = None, n_points: int = 50,
                           by: Optional[str] = None, topics: Optional[Sequence[int]] = None,
                           at: Optional[Dict[str, object]] = None, formula: Optional[str] = None,
                           alpha: float = 0.05) -> pd.DataFrame:
        """Predicted topic proportions over a covariate, others at their mean/mode.

        With `by`, one curve is produced per level of that column.
        """
        if covariate not in self.metadata.columns:
            raise KeyError(f'Covariate {covariate!r} not in model metadata')
        f = self._formula(formula)
        if values is None:
            s = self.metadata[covariate]
            if pd.api.types.is_numeric_dtype(s):
                values = np.linspace(s.min(), s.max(), n_points)
            else:
                values = sorted(s.unique())
        levels = sorted(self.metadata[by].unique()) if by else [None]
        topics = list(topics) if topics is not None else list(range(1, self.K + 1))

        frames = []
        for level in levels:
            ref = self._reference_row(at)
            if by:
                ref[by] = level
            grid = pd.DataFrame([ref] * len(values))
            grid[covariate] = list(values)
            for t in topics:
                res = self._ols(t - 1, f)
                pred = res.get_prediction(grid).summary_frame(alpha=alpha)
                frames.append(pd.DataFrame({
                    'topic': t, covariate: list(values),
                    'estimate': pred['mean'].values,
                    'ci_lower': pred['mean_ci_lower'].values,
                    'ci_upper': pred['mean_ci_upper'].values,
                    **({by: level} if by else {}),
                }))
        return pd.concat(frames, ignore_index=True)


def _row_ecdf(a: np.ndarray) -> np.ndarray:
    # rank of each entry within its row, scaled to (0, 1]
    ranks = pd.DataFrame(a).rank(axis=1, method='average').values
    return ranks / a.shape[1]


def _normalize_rows(m: np.ndarray) -> np.ndarray:
    m = np.asarray(m, dtype=float)
    sums = m.sum(axis=1, keepdims=True)
    out = np.divide(m, sums, out=np.full_like(m, 1.0 / m.shape[1]), where=sums > 0)
    return out


def fit_topic_model(dtm: DocumentTermMatrix, K: int, prevalence: Optional[str] = None,
                    init: str = 'spectral', method: str = 'nmf', seed: int = 0,
                    max_iter: int = 500) -> TopicModel:
    """Fit K topics to the document-term matrix.

    method='nmf' factorises the counts with scikit-learn NMF; init='spectral'
    uses the deterministic SVD-based nndsvda start, init='random' a seeded one.
    method='lda' fits LatentDirichletAllocation (random init only).
    When a prevalence formula is given its per-topic regressions are fit
    right away so a bad formula fails here rather than at inspection time.
    """
    if method not in METHODS:
        raise ValueError(f'Invalid method: {method}. Must be one of {list(METHODS)}')
    if init not in INITS:
        raise ValueError(f'Invalid init: {init}. Must be one of {list(INITS)}')
    if method == 'lda' and init == 'spectral':
        raise ValueError("LDA only supports init='random'")
    if K < 2:
        raise ValueError(f'K must be at least 2, got {K}')
    if K > dtm.n_words:
        raise ValueError(f'K={K} exceeds vocabulary size {dtm.n_words}')

    X = dtm.counts.astype(float)
    logger.info(f'Fitting {method} topic model: K={K}, init={init}, D={dtm.n_docs}, V={dtm.n_words}')
    if method == 'nmf':
        est = NMF(n_components=K, init='nndsvda' if init == 'spectral' else 'random',
                  random_state=seed, max_iter=max_iter)
        W = est.fit_transform(X)
        H = est.components_
        logger.debug(f'NMF stopped after {est.n_iter_} iterations, error {est.reconstruction_err_:.4f}')
    else:
        est = LatentDirichletAllocation(n_components=K, max_iter=min(max_iter, 100), random_state=seed,
                                        learning_method='batch')
        W = est.fit_transform(X)
        H = est.components_
        logger.debug(f'LDA stopped after {est.n_iter_} iterations')

    theta = _normalize_rows(W)
    beta = _normalize_rows(H + 1e-12)
    model = TopicModel(K, list(dtm.vocab), theta, beta, dtm.metadata, dtm.corpus_counts, est,
                       prevalence=prevalence, method=method, init=init, seed=seed)
    if prevalence:
        model.estimate_effect()
    return model
