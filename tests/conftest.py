import matplotlib
matplotlib.use('Agg')

import pandas as pd
import pytest

from blogtext.data import documents_from_texts
from blogtext.lexicons import Lexicon

ECONOMY = ['tax budget deficit spending economy', 'economy tax cuts budget jobs',
           'deficit spending budget tax economy', 'jobs economy tax budget deficit']
WAR = ['iraq troops surge military war', 'war iraq military troops withdrawal',
       'troops surge iraq war military', 'military war troops iraq surge']


@pytest.fixture
def toy_docs() -> pd.DataFrame:
    return documents_from_texts(['bad tax bad', 'good war'],
                                {'rating': ['Liberal', 'Conservative'], 'day': [1, 1]})


@pytest.fixture
def toy_lexicon() -> Lexicon:
    return Lexicon.from_mapping({'bad': -2, 'good': 2, 'tax': -1, 'war': -3}, name='toy')


@pytest.fixture
def blog_docs() -> pd.DataFrame:
    """24 posts on two themes; conservatives write more about the war late in the year."""
    texts, ratings, days = [], [], []
    for i in range(24):
        theme = WAR if (i % 2 == 0 and i >= 8) else ECONOMY
        texts.append(theme[i % 4] + (' good news' if i % 3 == 0 else ' bad news'))
        ratings.append('Conservative' if i % 2 == 0 else 'Liberal')
        days.append(i + 1)
    return documents_from_texts(texts, {'rating': ratings, 'day': days})


@pytest.fixture
def blog_csv(tmp_path, blog_docs) -> str:
    df = blog_docs.rename(columns={'doc_id': 'docname', 'text': 'documents'})
    df['blog'] = ['at', 'db'] * 12
    path = tmp_path / 'poliblogs.csv'
    df.to_csv(path, index=False)
    return str(path)
