"""YAML configuration loader for the blog analysis."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from .topic_model import INITS, METHODS

# Config directory relative to this file
CONFIG_DIR = Path(__file__).parent.parent / 'configs'


@dataclass
class DataConfig:
    path: str = 'data/poliblogs2008.csv'
    text_column: str = 'documents'
    id_column: Optional[str] = 'docname'
    rating_column: str = 'rating'
    day_column: str = 'day'


@dataclass
class PreprocessConfig:
    stop_words: str = 'snowball'  # "snowball" or "none"
    extra_stop_words: List[str] = field(default_factory=list)
    min_word_length: int = 3
    stem: bool = True
    lower_thresh: int = 15
    upper_thresh: Optional[int] = None

    def __post_init__(self) -> None:
        if self.stop_words not in ('snowball', 'none'):
            raise ValueError(f"Invalid stop_words: {self.stop_words}. Must be 'snowball' or 'none'")
        if self.min_word_length < 1:
            raise ValueError(f'min_word_length must be >= 1, got {self.min_word_length}')
        if self.lower_thresh < 0:
            raise ValueError(f'lower_thresh must be >= 0, got {self.lower_thresh}')
        if self.upper_thresh is not None and self.upper_thresh <= self.lower_thresh:
            raise ValueError(f'upper_thresh ({self.upper_thresh}) must exceed lower_thresh ({self.lower_thresh})')


@dataclass
class SentimentConfig:
    lexicon: str = 'bing'  # "bing", "vader" or a CSV path
    group_keys: List[str] = field(default_factory=lambda: ['rating', 'day'])
    top_words: int = 10

    def __post_init__(self) -> None:
        if not self.group_keys:
            raise ValueError('group_keys must name at least one column')


@dataclass
class TopicModelConfig:
    K: int = 20
    prevalence: Optional[str] = '~ rating + s(day)'
    method: str = 'nmf'
    init: str = 'spectral'
    seed: int = 0
    max_iter: int = 500
    top_words: int = 7
    thoughts_per_topic: int = 3
    effect_covariate: Optional[str] = 'day'
    effect_by: Optional[str] = 'rating'
    search_k: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.method not in METHODS:
            raise ValueError(f'Invalid method: {self.method}. Must be one of {list(METHODS)}')
        if self.init not in INITS:
            raise ValueError(f'Invalid init: {self.init}. Must be one of {list(INITS)}')
        if self.method == 'lda' and self.init != 'random':
            raise ValueError("method 'lda' requires init 'random'")
        if self.K < 2:
            raise ValueError(f'K must be at least 2, got {self.K}')
        if any(k < 2 for k in self.search_k):
            raise ValueError(f'search_k values must be at least 2, got {self.search_k}')


@dataclass
class AnalysisConfig:
    data: DataConfig = field(default_factory=DataConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    sentiment: SentimentConfig = field(default_factory=SentimentConfig)
    topic_model: TopicModelConfig = field(default_factory=TopicModelConfig)
    output_dir: str = 'outputs'


def _section(cls, data: dict, key: str):
    sec = data.get(key) or {}
    if not isinstance(sec, dict):
        raise ValueError(f'Config section {key!r} must be a mapping')
    known = set(cls.__dataclass_fields__)
    unknown = set(sec) - known
    if unknown:
        raise ValueError(f'Unknown key(s) in {key!r}: {sorted(unknown)}')
    return cls(**sec)


def config_from_dict(data: dict) -> AnalysisConfig:
    return AnalysisConfig(
        data=_section(DataConfig, data, 'data'),
        preprocess=_section(PreprocessConfig, data, 'preprocess'),
        sentiment=_section(SentimentConfig, data, 'sentiment'),
        topic_model=_section(TopicModelConfig, data, 'topic_model'),
        output_dir=data.get('output_dir', 'outputs'),
    )


def load_config(name: str) -> AnalysisConfig:
    """Load analysis config by name (e.g. 'default') or path to a YAML file."""
    if '/' in name or name.endswith('.yaml') or name.endswith('.yml'):
        config_path = Path(name)
    else:
        config_path = CONFIG_DIR / f'{name}.yaml'

    if not config_path.exists():
        raise FileNotFoundError(f'Config file not found: {config_path}')

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    return config_from_dict(data)
