from eight_off import Action, EightOff, LocationKind
import random
import argparse
import logging
import time
import multiprocessing as mp
from concurrent.futures import ProcessPoolExecutor
import os
from typing import Iterable, List, Tuple, Dict, Optional

LOGGER = logging.getLogger("agent_greedy_heuristic")

STRATEGIES = ("weighted", "hint")

# (origin kind, destination kind) -> relative weight
DEFAULT_WEIGHTS: Dict[Tuple[LocationKind, LocationKind], int] = {
    (LocationKind.FREE_CELL, LocationKind.FOUNDATION): 40,
    (LocationKind.TABLEAU, LocationKind.FOUNDATION): 40,
    (LocationKind.FREE_CELL, LocationKind.TABLEAU): 20,
    (LocationKind.TABLEAU, LocationKind.TABLEAU): 10,
    (LocationKind.TABLEAU, LocationKind.FREE_CELL): 2,
}


def sample_action(
    valid_actions: list[Action],
    weights: Optional[Dict[Tuple[LocationKind, LocationKind], int]] = None,
    rng: Optional[random.Random] = None,
) -> Action:
    if len(valid_actions) == 0:
        msg = "No valid actions"
        raise ValueError(msg)

    if len(valid_actions) == 1:
        return valid_actions[0]

    weights = weights or DEFAULT_WEIGHTS
    rng = rng or random.Random()

    weight_map: list[Tuple[Action, int]] = []
    for action in valid_actions:
        category = (action.from_location.kind, action.to_location.kind)
        if category not in weights:
            raise ValueError(f"Invalid action: {action}")
        weight_map.append((action, weights[category]))

    total = sum(weight for _, weight in weight_map)
    r = rng.uniform(0, total)
    upto = 0
    for item, weight in weight_map:
        if upto + weight >= r:
            return item
        upto += weight
    raise AssertionError


def choose_action(
    game: EightOff,
    valid_actions: list[Action],
    strategy: str,
    rng: random.Random,
    explore: bool = False,
) -> Action:
    """
    Pick the next action for the given strategy.

    The hint strategy plays the engine's hint whenever one exists; when the
    current position has been seen before (explore=True) it falls back to
    weighted sampling so that it does not replay the same cycle.
    """
    if strategy == "hint" and not explore:
        hint = game.find_hint()
        if hint is not None:
            action = hint.as_action()
            if action in valid_actions:
                return action
    return sample_action(valid_actions, rng=rng)


def format_board(game: EightOff) -> str:
    render = game.render()
    lines = [
        f"State: {render.state}, moves: {render.history_depth}",
        "Free cells: " + " ".join(str(card) if card is not None else "--" for card in render.free_cells),
        "Foundations: " + " ".join(str(card) if card is not None else "--" for card in render.foundations),
        "Tableaus:",
    ]
    for i, tableau in enumerate(render.tableaus):
        lines.append(f"  T{i+1}: {' '.join(str(card) for card in tableau)}")
    return "\n".join(lines)


def play_game(
    seed: Optional[int] = None,
    max_steps: int = 1000,
    strategy: str = "weighted",
    print_interval: int = 0,
) -> Tuple[bool, int]:
    """
    Play a single game of Eight Off with the automated agent.

    Args:
        seed: Seed for the deal and for the agent's sampling (None = random)
        max_steps: Maximum number of steps before giving up
        strategy: "weighted" for weighted random moves, "hint" to follow the engine's hints
        print_interval: Number of turns after which to print game state (0 = never print)

    Returns:
        Tuple of (win status, number of steps taken)
    """
    if strategy not in STRATEGIES:
        raise ValueError(f"Unknown strategy: {strategy}")

    game = EightOff(seed=seed)
    rng = random.Random(seed)
    steps = 0

    # Keep track of seen states to avoid loops
    seen_states: Dict[str, int] = {}

    while steps < max_steps:
        if game.is_done():
            LOGGER.debug("Game won in %d steps", steps)
            return True, steps

        valid_actions = game.get_all_legal_actions()
        if not valid_actions:
            LOGGER.debug("No more valid actions after %d steps. Game lost.", steps)
            return False, steps

        render = game.render()
        game_state = str(render.tableaus) + str(render.free_cells)
        seen_states[game_state] = seen_states.get(game_state, 0) + 1
        if seen_states[game_state] > 3:  # Allow revisiting states a few times
            LOGGER.debug("Loop detected after %d steps. Game lost.", steps)
            return False, steps

        action = choose_action(game, valid_actions, strategy, rng, explore=seen_states[game_state] > 1)
        game.step(action)
        steps += 1

        message = game.check_game_end()
        if message is not None:
            LOGGER.debug("%s (step %d)", message, steps)

        if print_interval > 0 and steps % print_interval == 0:
            print(f"\n=== Game state at step {steps} ===")
            print(format_board(game))
            print("Last move:", game.history.peek())
            print("=" * 40)

    LOGGER.debug("Reached maximum steps (%d). Game lost.", max_steps)
    return game.is_done(), steps


def play_game_worker(args: Tuple[Optional[int], int, str]) -> Tuple[bool, int]:
    """
    Worker function for parallel execution of games.

    Args:
        args: Tuple containing (seed, max_steps, strategy)

    Returns:
        Tuple of (win status, number of steps taken)
    """
    seed, max_steps, strategy = args
    return play_game(seed=seed, max_steps=max_steps, strategy=strategy)


def game_seeds(num_games: int, base_seed: Optional[int]) -> List[Optional[int]]:
    if base_seed is None:
        return [None] * num_games
    return [base_seed + i for i in range(num_games)]


def summarize(results: Iterable[Tuple[bool, int]]) -> Dict[str, float]:
    results = list(results)
    if not results:
        raise ValueError("No results to summarize")
    wins = sum(1 for win, _ in results if win)
    total_steps = sum(steps for _, steps in results)
    return {
        "games": len(results),
        "wins": wins,
        "win_rate": wins / len(results) * 100,
        "avg_steps": total_steps / len(results),
    }


def play_multiple_games(
    num_games: int = 100,
    max_steps: int = 1000,
    strategy: str = "weighted",
    base_seed: Optional[int] = None,
    num_processes: Optional[int] = None,
) -> Dict[str, float]:
    """
    Play multiple games in parallel and report statistics.

    Args:
        num_games: Number of games to play
        max_steps: Maximum steps per game
        strategy: Agent strategy, see STRATEGIES
        base_seed: Seed of the first game; game i uses base_seed + i (None = random deals)
        num_processes: Number of processes to use (None = auto)
    """
    if num_processes is None or num_processes <= 0:
        num_cpus = os.cpu_count() or 4
        num_processes = min(num_cpus, num_games)
    else:
        num_processes = min(num_processes, num_games)

    LOGGER.info("Playing %d games using %d processes...", num_games, num_processes)

    start_time = time.time()
    game_args = [(seed, max_steps, strategy) for seed in game_seeds(num_games, base_seed)]
    results: List[Tuple[bool, int]] = []

    completed = 0
    with ProcessPoolExecutor(max_workers=num_processes) as executor:
        for result in executor.map(play_game_worker, game_args):
            results.append(result)

            completed += 1
            if completed % max(1, num_games // 20) == 0 or completed == num_games:
                LOGGER.info("Completed %d/%d games...", completed, num_games)

    duration = time.time() - start_time
    summary = summarize(results)

    print(f"\nResults from {num_games} games ({strategy}):")
    print(f"Win rate: {summary['win_rate']:.2f}% ({summary['wins']}/{num_games})")
    print(f"Average steps per game: {summary['avg_steps']:.2f}")
    print(f"Time taken: {duration:.2f} seconds ({duration/num_games:.2f} seconds per game)")
    return summary


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Play Eight Off solitaire with an automated agent')
    parser.add_argument('--games', type=int, default=1,
                        help='Number of games to play (default: 1)')
    parser.add_argument('--max-steps', type=int, default=1000,
                        help='Maximum steps per game (default: 1000)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Seed of the first deal (default: random)')
    parser.add_argument('--strategy', choices=STRATEGIES, default='weighted',
                        help='Move selection strategy (default: weighted)')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable debug logging')
    parser.add_argument('--print-interval', type=int, default=0,
                        help='Print game state every N steps (default: 0 = never)')
    parser.add_argument('--processes', type=int, default=0,
                        help='Number of processes to use (default: 0 = auto)')
    return parser.parse_args(argv)


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Main entry point for the CLI application."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.games == 1:
        # For a single game, just run directly (no parallelization needed)
        win, steps = play_game(
            seed=args.seed,
            max_steps=args.max_steps,
            strategy=args.strategy,
            print_interval=args.print_interval,
        )
        print(f"Game {'won' if win else 'lost'} after {steps} steps")
    else:
        # Handle process start method for multiprocessing on macOS
        try:
            mp.set_start_method('spawn')
        except RuntimeError:
            # Method already set
            pass
        play_multiple_games(
            num_games=args.games,
            max_steps=args.max_steps,
            strategy=args.strategy,
            base_seed=args.seed,
            num_processes=args.processes,
        )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
