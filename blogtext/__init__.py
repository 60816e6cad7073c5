# Text analysis of the 2008 political blog corpus:
# tidy tokenization, stop-word removal, lexicon sentiment by document and by rating/day,
# and a topic model whose prevalence is explained by document covariates.

from .data import Document, load_corpus
from .text_preprocess import tokenize_documents, load_stop_words, remove_stop_words, process_documents
from .lexicons import Lexicon, get_lexicon
from .sentiment import document_sentiment, group_sentiment, net_sentiment, word_contributions
from .dtm import DocumentTermMatrix, prepare_documents
from .topic_model import TopicModel, fit_topic_model
from .pipeline import run_analysis
