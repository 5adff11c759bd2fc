import pytest

from exit_tuner.config import HISTORY_TABLE, SUMMARY_TABLE, TRADES_TABLE
from exit_tuner.engine.evolve import crossover, evolve, mutate, random_population, step_generation
from exit_tuner.engine.random_source import SeededRandom
from exit_tuner.engine.scoring import ADDITIVE, SENTINEL_FITNESS, WEIGHTED, get_scoring_policy
from exit_tuner.engine.store import CsvResultStore, InMemoryResultStore
from exit_tuner.strategy.errors import ConfigurationError, MissingHistoryError
from exit_tuner.strategy.params import ParameterSet


class FlakyStore(InMemoryResultStore):
    """Fails every other summary read-back."""

    def __init__(self):
        super().__init__()
        self.reads = 0

    def read_last(self, table):
        self.reads += 1
        if self.reads % 2 == 0:
            raise MissingHistoryError("summary row not found")
        return super().read_last(table)


def _run(seed, **kwargs):
    settings = dict(pop_size=6, generations=5, mutation_rate=0.5, sample_count=10)
    settings.update(kwargs)
    return evolve(rng=SeededRandom(seed), **settings)


def test_same_seed_reproduces_history():
    a = _run(7)
    b = _run(7)
    assert a.history == b.history
    assert a.history_frame().to_csv(index=False) == b.history_frame().to_csv(index=False)
    assert a.best == b.best


def test_same_seed_reproduces_history_through_csv_store(tmp_path):
    _run(11, store=CsvResultStore(tmp_path / "a"))
    _run(11, store=CsvResultStore(tmp_path / "b"))
    history_a = (tmp_path / "a" / f"{HISTORY_TABLE}.csv").read_bytes()
    history_b = (tmp_path / "b" / f"{HISTORY_TABLE}.csv").read_bytes()
    assert history_a == history_b


def test_best_fitness_is_monotone_and_global():
    result = _run(3, generations=8)
    trajectory = result.best_fitness_by_generation
    assert len(trajectory) == 8
    assert all(later >= earlier for earlier, later in zip(trajectory, trajectory[1:]))
    assert result.best.fitness == max(rec.fitness for rec in result.history)
    assert result.best.fitness == trajectory[-1]


def test_elite_survives_into_next_generation():
    result = _run(5, generations=6)
    by_generation = {}
    for rec in result.history:
        by_generation.setdefault(rec.generation, []).append(rec)

    for gen in range(1, 6):
        elite = by_generation[gen][0].params
        assert elite in [rec.params for rec in by_generation[gen + 1]]
    assert result.final_population[0] == by_generation[6][0].params


def test_step_generation_keeps_size_and_ranks_records():
    rng = SeededRandom(9)
    population = random_population(5, rng)
    next_population, records = step_generation(
        population, rng, generation=1, mutation_rate=1.0, sample_count=8
    )
    assert len(next_population) == 5
    assert next_population[0] == records[0].params
    fitness = [rec.fitness for rec in records]
    assert fitness == sorted(fitness, reverse=True)
    assert sorted(rec.params.tp1 for rec in records) == sorted(p.tp1 for p in population)


def test_population_of_one_breeds_nothing():
    rng = SeededRandom(2)
    population = random_population(1, rng)
    next_population, records = step_generation(population, rng, generation=1, mutation_rate=0.3, sample_count=4)
    assert next_population == [records[0].params]


def test_random_population_respects_ranges_and_base():
    base = ParameterSet(stale_minutes=9)
    population = random_population(50, SeededRandom(1), base)
    assert len(population) == 50
    for p in population:
        assert 0.1 <= p.tp1 < p.tp2 <= 0.8
        assert -0.3 <= p.stop <= -0.1
        assert 10 <= p.max_hold_minutes < 30
        assert p.stale_minutes == 9


def test_crossover_picks_each_field_from_either_parent(sequence_rng):
    a = ParameterSet(tp1=0.1, tp2=0.3, stop=-0.1, max_hold_minutes=10)
    b = ParameterSet(tp1=0.2, tp2=0.6, stop=-0.3, max_hold_minutes=25)
    child = crossover(a, b, sequence_rng([0.1, 0.9, 0.1, 0.9]))
    assert child == {"tp1": 0.1, "tp2": 0.6, "stop": -0.1, "max_hold_minutes": 25, "stale_minutes": 5}


def test_mutate_noise_is_bounded_and_rounded(sequence_rng):
    assert mutate(0.25, sequence_rng([0.0])) == 0.2
    assert mutate(0.25, sequence_rng([0.5])) == 0.25
    assert mutate(-0.2, sequence_rng([0.99])) == pytest.approx(-0.15)


def test_failed_batches_score_sentinel_without_aborting():
    result = _run(1, sample_count=0, generations=2)
    assert len(result.history) == 12
    assert all(rec.fitness == SENTINEL_FITNESS for rec in result.history)
    assert result.best.fitness == SENTINEL_FITNESS


def test_missing_summary_rows_sort_last():
    store = FlakyStore()
    _, records = step_generation(
        random_population(4, SeededRandom(4)),
        SeededRandom(5),
        generation=1,
        mutation_rate=0.3,
        sample_count=6,
        store=store,
    )
    assert [rec.fitness == SENTINEL_FITNESS for rec in records] == [False, False, True, True]
    assert records[0].fitness > SENTINEL_FITNESS


def test_store_collects_all_tables():
    store = InMemoryResultStore()
    result = _run(8, pop_size=4, generations=3, sample_count=5, store=store)
    assert len(store.read_table(TRADES_TABLE)) == 4 * 3 * 5
    assert len(store.read_table(SUMMARY_TABLE)) == 4 * 3
    history = store.read_table(HISTORY_TABLE)
    assert len(history) == len(result.history) == 12
    # Fitness comes from the rounded summary rows.
    for rec in result.history:
        assert rec.avg_pnl == round(rec.avg_pnl, 2)
        assert rec.fitness == pytest.approx(ADDITIVE.score(rec.win_rate, rec.avg_pnl))


def test_zero_generations_returns_no_best():
    result = _run(1, generations=0)
    assert result.best is None
    assert result.history == ()
    assert len(result.final_population) == 6


@pytest.mark.parametrize(
    "overrides",
    [{"pop_size": 0}, {"generations": -1}, {"mutation_rate": 1.5}, {"mutation_rate": -0.1}],
)
def test_invalid_run_settings_are_rejected(overrides):
    with pytest.raises(ConfigurationError):
        _run(1, **overrides)


def test_scoring_policies():
    assert ADDITIVE.score(60.0, 10.0) == pytest.approx(65.0)
    assert WEIGHTED.score(60.0, 10.0) == pytest.approx(25.0)
    assert get_scoring_policy("weighted") is WEIGHTED
    with pytest.raises(ConfigurationError):
        get_scoring_policy("sharpe")


def test_weighted_policy_changes_fitness():
    additive = _run(6, generations=1)
    weighted = _run(6, generations=1, policy=WEIGHTED)
    rec = weighted.history[0]
    assert rec.fitness == pytest.approx(WEIGHTED.score(rec.win_rate, rec.avg_pnl))
    assert {r.params for r in additive.history} == {r.params for r in weighted.history}
