#!/usr/bin/env python3
from __future__ import annotations

import json
import logging.config
from dataclasses import dataclass
from pathlib import Path
import shutil
import subprocess as sp
import sys
from typing import Optional

from IPython import start_ipython
import click
import numpy as np

from . import version
from .cracker import SearchBudget, crack
from .gf2_util import build_matrix, invert
from .tables import CipherTables, parse_block
from .types import SearchBudgetExceeded, SearchMode, SingularMatrixError
from .util import fmt_block


log = logging.getLogger(__name__)


@dataclass
class GlobalArgs:
    tables: CipherTables

def setup_logging(filename: Optional[Path] = None):
    config_file = Path(__file__).parent / 'log_config.json'
    with config_file.open('r') as f:
        config = json.load(f)

    if filename:
        config['handlers']['file']['filename'] = str(filename)

    logging.getLogger().setLevel(logging.DEBUG)
    logging.config.dictConfig(config)

def git_info() -> tuple[str|None, list[str]|None]:
    git_cmd = shutil.which('git')
    if git_cmd is None:
        return None, None
    try:
        git_commit = sp.check_output([git_cmd, 'rev-parse', 'HEAD'], stderr=sp.DEVNULL).decode().strip()
        git_changed_files = sp.check_output([git_cmd, 'status', '--porcelain', '-uno', '-z'], stderr=sp.DEVNULL).decode().strip('\0').split('\0')
    except sp.CalledProcessError:
        return None, None
    return git_commit, git_changed_files


@click.group()
@click.argument('tables_path', type=click.Path(exists=True, dir_okay=False, resolve_path=True), required=True)
@click.pass_context
def cli(ctx, tables_path: str|Path) -> None:
    """preimage search for byte-oriented substitution-permutation ciphers"""
    tables_path = Path(tables_path)
    setup_logging(tables_path.with_suffix('.log'))
    git_commit, git_changed_files = git_info()
    log.info(f"version: {version}, git_commit: {git_commit}, git_changed_files: {git_changed_files}")
    log.debug("arguments: %s", sys.argv, extra={"cli_args": sys.argv, "git_commit": git_commit, "git_changed_files": git_changed_files, "version": version})

    try:
        tables = CipherTables.load(tables_path)
    except ValueError as e:
        raise click.UsageError(str(e))
    log.info(f"loaded cipher tables from {tables_path}")
    ctx.obj = GlobalArgs(tables)


@cli.command(name='crack')
@click.argument('target')
@click.option('-r', '--rounds', type=click.IntRange(min=0), required=True, help="number of rounds to invert")
@click.option('--all-families', is_flag=True, help="do not stop at the first branch with preimages")
@click.option('--max-candidates', type=click.IntRange(min=0), default=None, help="abort after generating this many candidates")
@click.option('--max-branches', type=click.IntRange(min=0), default=None, help="abort after trying this many combination-stage branches")
@click.option('--timeout', type=float, default=None, help="abort after this many seconds")
@click.option('-o', '--output', type=click.Path(dir_okay=False, writable=True), default=None, help="save preimages as .npy file")
@click.option('--progress', is_flag=True, help="show a progress bar over the branches")
@click.pass_obj
def crack_cmd(obj: GlobalArgs, target: str, rounds: int, all_families: bool, max_candidates: int|None, max_branches: int|None, timeout: float|None, output: str|None, progress: bool) -> None:
    """find inputs that encrypt to TARGET (64 hex characters)"""
    try:
        target_block = parse_block(target)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='TARGET')

    mode = SearchMode.all_families if all_families else SearchMode.first_family
    budget = SearchBudget(max_candidates=max_candidates, max_branches=max_branches, timeout=timeout)
    log.info(f"searching preimages of {fmt_block(target_block)} over {rounds} rounds ({mode.value})")

    try:
        preimages = crack(target_block, obj.tables.diffusion, obj.tables.confusion, rounds, mode=mode, budget=budget, progress=progress)
    except SingularMatrixError as e:
        log.error(e)
        sys.exit(1)
    except SearchBudgetExceeded as e:
        log.error(e)
        sys.exit(1)

    if not preimages:
        log.info("RESULT no preimage")
    for preimage in preimages:
        click.echo(fmt_block(preimage))

    if output is not None:
        np.save(output, np.array(preimages, dtype=np.uint8).reshape(-1, 32))
        log.info(f"wrote {len(preimages)} preimages to {output}")


@cli.command()
@click.pass_obj
def invert_matrix(obj: GlobalArgs) -> None:
    """print the inverse diffusion matrix as 32 words"""
    matrix = build_matrix(obj.tables.diffusion)
    try:
        inverse = invert(matrix)
    except SingularMatrixError as e:
        log.error(e)
        sys.exit(1)

    weights = 1 << np.arange(inverse.shape[1], dtype=np.uint64)
    for row in inverse.view(np.ndarray):
        click.echo(f"{int(np.sum(row.astype(np.uint64) * weights)):#010x}")


@cli.command()
@click.pass_obj
def embed(obj: GlobalArgs) -> None:
    """launch an interactive IPython shell"""
    tables = obj.tables
    sys.argv = sys.argv[:1] # remove all arguments except the command, so start_ipython doesn't try to parse it
    start_ipython(user_ns=globals()|locals())


if __name__ == "__main__":
    cli()
