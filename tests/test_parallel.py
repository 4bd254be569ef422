import time

from hashbytes.parallel import OrderedResults, normalized_jobs, process_indexed_in_parallel


def test_ordered_results_flushes_only_when_contiguous():
    ordered = OrderedResults()
    assert ordered.push(2, "third") == []
    assert ordered.push(4, "fifth") == []
    assert ordered.push(1, "second") == []
    assert ordered.push(0, "first") == ["first", "second", "third"]
    assert ordered.push(6, "seventh") == []
    assert ordered.push(3, "fourth") == ["fourth", "fifth"]
    assert ordered.push(5, "sixth") == ["sixth", "seventh"]


def test_ordered_results_can_emit_one_output_per_input_in_sequence():
    ordered = OrderedResults()
    emitted = []
    for index, value in [(3, "d"), (1, "b"), (0, "a"), (2, "c")]:
        emitted.extend(ordered.push(index, value))
    assert emitted == ["a", "b", "c", "d"]


def test_ordered_results_emits_in_input_order():
    ordered = OrderedResults()
    assert ordered.push(1, "second") == []
    assert ordered.push(0, "first") == ["first", "second"]


def test_normalized_jobs_defaults_to_available_parallelism_or_one():
    assert normalized_jobs(None) >= 1


def test_normalized_jobs_clamps_zero_to_one():
    assert normalized_jobs(0) == 1
    assert normalized_jobs(1) == 1
    assert normalized_jobs(6) == 6
    assert normalized_jobs(8) == 8


def test_process_indexed_in_parallel_is_deterministic_for_jobs_one():
    output = process_indexed_in_parallel(["a", "b", "c", "d"], 1, lambda pair: f"{pair[0]}:{pair[1]}")
    assert output == ["0:a", "1:b", "2:c", "3:d"]


def _sleep_then_index(pair):
    index, delay_ms = pair
    time.sleep(delay_ms / 1000)
    return index


def test_process_indexed_in_parallel_is_deterministic_for_jobs_many():
    output = process_indexed_in_parallel([5, 1, 4, 0, 3, 2], 4, _sleep_then_index)
    assert output == [0, 1, 2, 3, 4, 5]


def _sleep_then_format(pair):
    index, delay_ms = pair
    time.sleep(delay_ms / 1000)
    return f"{index}:{delay_ms}"


def test_sequential_and_parallel_outputs_match_exactly():
    inputs = [9, 0, 7, 1, 5, 2, 3, 8, 6, 4]
    sequential = process_indexed_in_parallel(inputs, 1, _sleep_then_format)
    parallel = process_indexed_in_parallel(inputs, 8, _sleep_then_format)
    assert parallel == sequential
    assert sequential[0] == "0:9"


def _simulate_work(pair):
    index, value = pair
    time.sleep(((17 - (index % 17)) % 17) / 1000)
    return f"{index}:{value}"


def test_parallel_processing_matches_sequential_order_and_values():
    inputs = list(range(64))
    sequential = process_indexed_in_parallel(inputs, 1, _simulate_work)
    parallel = process_indexed_in_parallel(inputs, 4, _simulate_work)
    assert parallel == sequential
    assert len(parallel) == 64


def test_zero_jobs_runs_sequentially():
    assert process_indexed_in_parallel([10, 20], 0, lambda pair: pair[1] + pair[0]) == [10, 21]


def test_empty_input_gives_empty_output():
    assert process_indexed_in_parallel([], 4, lambda pair: pair) == []