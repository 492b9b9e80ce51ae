# easeprobe

Building blocks for a health-probing service: extracting values from HTML, XML,
JSON or plain-text documents, evaluating boolean health expressions over them,
managing PID files, configuring log output, merging YAML configuration files, and
routing probe results to notifiers through named channels.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `easeprobe.evaltypes` | `DocType`, `VarType`, `parse_doc_type`, `parse_var_type`, `dump_enum_yaml`, `load_doc_type_yaml`, `load_var_type_yaml` |
| `easeprobe.extract` | `Extractor`, `HTMLExtractor`, `XMLExtractor`, `JSONExtractor`, `RegexExtractor`, `try_parse_time`, `parse_duration`, `ExtractError` |
| `easeprobe.expression` | `Expression`, `ExpressionError` |
| `easeprobe.evaluator` | `Evaluator`, `Variable` |
| `easeprobe.daemon` | `create_pid_file`, `PIDFile`, `process_exists`, `DaemonError` |
| `easeprobe.logconf` | `LogSettings`, `LogLevel`, `load_log_level`, `dump_log_level` |
| `easeprobe.merge` | `merge_yaml_files`, `merge_documents`, `MergeError` |
| `easeprobe.channel` | `Channel`, `Status`, `set_dry_notify`, `is_dry_notify` |
| `easeprobe.manager` | the process-wide channel registry |

## Extracting values

```python
from easeprobe.extract import HTMLExtractor, RegexExtractor
from easeprobe.evaltypes import VarType

extractor = HTMLExtractor("<html><body><div id='mem'>512</div></body></html>")
extractor.set_query("//div[@id='mem']")
extractor.set_var_type(VarType.INT)
print(extractor.extract())        # 512

text = RegexExtractor("name: Server, cpu: 0.8")
text.set_query("cpu: (?P<cpu>[0-9.]*)")
text.set_var_type(VarType.FLOAT)
print(text.extract())             # 0.8
```

HTML, XML and JSON documents are queried with XPath; for JSON, object keys
become elements under a root and array items become `item` elements. When a
query selects several nodes the first one is used, and a query that selects
nothing gives an empty string. `RegexExtractor` returns the first capture group
if the pattern has one, otherwise the whole match.

Supported value types are `int`, `float`, `string`, `bool`, `time` and
`duration`. Times are tried against a list of common layouts (RFC 3339, ISO 8601,
`YYYY-MM-DD`, `YYYY-MM-DD HH:MM:SS`, …) by `try_parse_time`; times without a zone
are taken as local time. Durations in the `300ms`, `1h30m`, `-1.5s` form are
parsed by `parse_duration` into a `timedelta`. Failures raise `ExtractError`.

## Evaluating health expressions

```python
from easeprobe.evaluator import Evaluator, Variable
from easeprobe.evaltypes import DocType, VarType

doc = '{"name": "Server", "mem_used": 512, "mem_total": 1024}'
evaluator = Evaluator(doc, DocType.JSON, "(mem_used / mem_total) < 0.8")
evaluator.add_variable(Variable("mem_used", VarType.INT, "//mem_used"))
evaluator.add_variable(Variable("mem_total", VarType.INT, "//mem_total"))
print(evaluator.evaluate())       # True
```

Expressions may also call extraction functions directly — `x_str`, `x_int`,
`x_float`, `x_bool`, `x_time`, `x_duration` — plus `strlen`, `now` and
`duration`:

```python
Evaluator(doc, DocType.JSON, "x_str('//name') == 'Server'").evaluate()
```

The language has number, string and boolean literals, `!` and unary `-`,
`* / % + -`, the comparisons `== != < > <= >=`, the regex matches `=~` and `!~`,
and `&&` / `||`. A string literal that reads as a time becomes a Unix timestamp,
so `x_time('//time') > '2022-08-11 10:10:10'` compares times; durations are
compared in nanoseconds. A non-boolean result counts as true when it is a
non-zero number or a non-empty string. Values extracted during evaluation are
kept in `Evaluator.extracted_values`, keyed by query, and `set_document`
swaps in a new document. A failed extraction or an invalid expression raises
an exception. `Expression` can be used on its own with a mapping of parameters
and functions.

## PID files

```python
from easeprobe.daemon import create_pid_file

with create_pid_file("run/easeprobe.pid") as pid_file:
    print(pid_file.path)
# the file is removed on leaving the block
```

`create_pid_file` writes the current process id, creating missing parent
directories, using `easeprobe.pid` inside the path if it is a directory, and
replacing a symbolic link with a regular file. `PIDFile.check()` returns `-1`
when the file is missing, unreadable or names no running process, and raises
`DaemonError` (with the `pid` attribute set) when the recorded process is
running. `PIDFile.remove()` deletes the file.

## Log settings

`LogSettings` describes where logs go (standard output, a plain file, or a
self-rotating file with size, age, backup-count and gzip-compression limits)
and the level. `init_log(logger)` opens the output and attaches it to the given
`logging.Logger`, or to the root logger. `rotate()` rotates a self-managed file
to a timestamped backup, or reopens a plain file that another program rotated.
`load_log_level` and `dump_log_level` convert levels to and from their YAML
names (`debug`, `info`, `warn`, `error`, `fatal`, `panic`).

## Merging configuration

`merge_yaml_files(directory)` merges every `*.yaml` file in a directory, in name
order, into one YAML text: mappings are merged deeply, lists are appended, and
later files win on scalar values. `merge_documents(into, source)` does the same
for two loaded documents. Missing files or invalid YAML raise `MergeError`.

## Channels

```python
from easeprobe import manager

manager.set_prober("ops", prober)
manager.set_notify("ops", notifier)
manager.config_all_channels()
manager.watch_for_all_events()
manager.get_channel("ops").send(result)
# ...
manager.all_done()
```

Probers and notifiers are any objects with `name`, `kind` and `channels`
attributes; notifiers also provide `notify(result)` and `dry_notify(result)`.
Results carry `name`, `endpoint`, `pre_status` and `status` (a `Status`).
A second prober or notifier with the same name in a channel is ignored.
Results are forwarded to a channel's notifiers only when the status changes,
and not on the first transition from `init` to `up`. `set_dry_notify(True)`
makes the channels call `dry_notify` instead of `notify`.

## What this package does not do

It has no command-line program and no probes of its own (HTTP, TCP, shell and
the like), no notifier implementations, no loader for a full configuration file,
no SLA reports or storage of probe results, and no web server. It provides the
pieces listed above for a program that supplies those.