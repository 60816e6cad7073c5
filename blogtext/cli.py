"""CLI entry point for the political blog analysis."""

import argparse
import logging

from .config import load_config
from .pipeline import run_analysis

logger = logging.getLogger(__name__)


def parse_k_grid(value: str) -> list:
    try:
        grid = [int(v) for v in value.split(',') if v.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError('--search-k must be a comma separated list of integers') from exc
    if not grid:
        raise argparse.ArgumentTypeError('--search-k needs at least one value')
    return grid


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Sentiment and topic analysis of political blog posts')
    parser.add_argument(
        '--config',
        default='default',
        help='Config name (default/test) or path to YAML file (default: default)',
    )
    parser.add_argument('--data', help='Override path to the input CSV')
    parser.add_argument('--output', help='Override output directory')
    parser.add_argument('--topics', type=int, help='Override number of topics K')
    parser.add_argument('--seed', type=int, help='Override topic model seed')
    parser.add_argument('--lexicon', help='Override sentiment lexicon (bing, vader or CSV path)')
    parser.add_argument('--search-k', type=parse_k_grid, help='Comma separated K grid, e.g. 5,10,15')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    config = load_config(args.config)

    # Override config values provided via CLI
    if args.data:
        config.data.path = args.data
    if args.output:
        config.output_dir = args.output
    if args.topics is not None:
        if args.topics < 2:
            raise ValueError(f'--topics must be at least 2, got {args.topics}')
        config.topic_model.K = args.topics
    if args.seed is not None:
        config.topic_model.seed = args.seed
    if args.lexicon:
        config.sentiment.lexicon = args.lexicon
    if args.search_k:
        config.topic_model.search_k = args.search_k

    logger.info(f'Running analysis on {config.data.path}')
    artifacts = run_analysis(config)
    logger.info(f'Produced {len(artifacts)} artifacts')


if __name__ == '__main__':
    main()
