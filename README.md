# groupagg

`groupagg` runs a `GROUP BY os, SUM(popularity)` aggregation over a CSV file
of phone records in several different ways, so the strategies can be
compared side by side:

- **One core**: sort-and-scan over a plain list, or a single open-addressing
  hash table.
- **Many cores** (threads): a worker pool whose per-worker tables are merged
  at the end; a shared table guarded by per-slot breakers with per-thread
  fallback tables; key partitioning into hash buckets; and a two-level hash
  map whose buckets are merged independently.
- **A small cluster**: a server listening on several TCP ports takes one
  client per port, collects the rows each client streams, and aggregates
  them with one of three strategies.

The package uses only the standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Input data

Each CSV row has fourteen fields: id, brand name, model name, OS,
popularity, best price, lowest price, highest price, number of sellers,
screen size, memory size, battery size, release date and bucket id. The
first line is a header. Numbers that do not parse count as zero; a row with
fewer than fourteen fields raises `ValueError`. `read_records` skips blank
lines and rejects rows whose field count differs from the first row's.

## Commands

Every command lists its options with `--help`.

### `groupagg`

```
groupagg phones_data.csv --strategy hashmap
```

Groups a local CSV file and prints one line per group,
`Popularity <sum> for group <os>`, followed by a blank line.
`--strategy` is one of `simple-array`, `hashmap` (the default),
`worker-pool`, `global-local`, `partitioning` or `two-level`;
`--workers` sets the number of workers for `worker-pool` (by default half
the CPU count, at least one).

The strategies keep their own quirks, and their results can differ:

- `simple-array` sorts by OS in descending order; phones without an OS are
  left out.
- `worker-pool` splits all rows into one chunk per worker and skips the
  first row of every chunk as if it were a header.
- `global-local`, `partitioning` and `two-level` work on blocks of 24 rows;
  a trailing partial block is dropped.
- `partitioning` hashes each OS into one of 65 buckets, reports each bucket
  under the first OS seen in it, and leaves bucket 0 out.

### `groupagg-server`

```
groupagg-server --ports 8001,8002 --strategy ordered-merge
```

Listens on every port in `--ports` (default `8001,8002,8003,8004`) at
`--addr` (default: all interfaces), accepts one client per port, reads
comma-separated rows until each client closes its side, then aggregates and
prints the groups in the same format as `groupagg`. `--strategy` is one of
`global-local` (default), `ordered-merge` or `partitioned-merge`.

A line starting with `/` is a command: `/quit` makes the server answer
`%quit%` to that client and stop without printing a result; any other
command is answered with `Unrecognized command.`. Rows that fail to parse
are reported and skipped.

### `groupagg-client`

```
groupagg-client --file part1.csv --port 8001 --mode ordered-merge
```

Reads the CSV file given with `--file`, drops its header, prepares the rows
according to `--mode` and sends them line by line to `--host`
(default `localhost`) at `--port` (default `8001`):

- `baseline` (default) sends the rows as they are;
- `ordered-merge` sorts them by OS in descending order, truncating the
  float fields to integers;
- `partitioned-merge` writes each row's two-level bucket number into the
  bucket id field.

The client logs what the server sends, stops when the server sends
`%quit%`, and exits with status 1 when it cannot connect.

## Library use

```python
from groupagg.linear_probing import HashTableWithLinearProbing
from groupagg.two_level import TwoLevelHashMap
from groupagg.phones import read_records
from groupagg.grouping import group_hashmap, group_two_level

table = HashTableWithLinearProbing(8)
table.put("android", 10)
table.put("android", table.get("android").value + 5)
assert table.contains_key("android")

two_level = TwoLevelHashMap()
two_level.put("ios", 3)

records = read_records("phones_data.csv")
for group in group_hashmap(records):
    print(group.os, group.popularity)
```

Modules:

- `groupagg.phones`: `Phone`, `GroupByOsPhone`, `GroupByBrandPhone`,
  `map_phone`, `map_record` and `read_records`.
- `groupagg.linear_probing`: `HashTableWithLinearProbing` (grows when a
  probe sequence wraps around, shrinks on `remove` when a quarter full),
  `Cell`, `hash_string_key` and `murmur_finalizer`. Keys are hashed on their
  first eight UTF-8 bytes.
- `groupagg.breaker_table`: `BreakerHashTable`, whose `put` returns
  `Breaker.OPENED` without writing when another thread holds the key's home
  slot, and `Breaker.CLOSED` otherwise.
- `groupagg.two_level`: `TwoLevelHashMap` with 256 buckets created on
  demand, and `bucket_of`.
- `groupagg.hamt`: `Hamt`, a small binary hash trie with `find` and `add`,
  and the FNV-1a `hash_str`.
- `groupagg.buffer`: `DataBuffer`, `DataBlock`, `make_partitioning` and
  `define_bucket_size`.
- `groupagg.grouping`: the local strategies (`group_simple_array`,
  `group_hashmap`, `group_worker_pool`, `group_global_local`,
  `group_partitioning`, `group_two_level`) and the helpers `merge_tables`,
  `sort_and_group` and `partition_hash`.
- `groupagg.cluster_server`: `Strategy`, `serve`, the aggregators
  `aggregate_global_local`, `aggregate_ordered` and `aggregate_partitioned`,
  and `merge`, `merge_sort` and `group_sorted`.
- `groupagg.cluster_client`: `Mode`, `prepare_lines`, `is_command` and
  `send_file`.

## What it does not do

The server is a single run: it takes exactly one client per port,
aggregates once and exits. It keeps nothing between runs, offers no query
language and no storage, and does not split a data file between clients;
each client sends the whole file it is given.