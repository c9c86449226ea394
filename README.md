# kubescore

A static analysis tool for Kubernetes manifests. It reads YAML files, finds
the Kubernetes objects in them, runs checks against Deployments and
StatefulSets, and reports a grade for each check with a short explanation of
what to improve.

## Installation

```
pip install .
```

This installs two commands, `kube-score` and `kubectl-score`.

## Usage

Score one or more manifest files:

```
kube-score score deployment.yaml statefulset.yaml service.yaml
```

Use `-` as the file name to read from standard input:

```
cat manifests.yaml | kube-score score -
```

Files may hold several documents separated by `---`, and `v1` `List`
objects are unpacked into their items. A document that starts with a Helm
`# Source: <path>` comment is reported under that path.

### Checks

Six checks are run:

| ID | Target |
| --- | --- |
| `deployment-has-host-podantiaffinity` | Deployment |
| `statefulset-has-host-podantiaffinity` | StatefulSet |
| `deployment-targeted-by-hpa-does-not-have-replicas-configured` | Deployment |
| `statefulset-has-servicename` | StatefulSet |
| `deployment-pod-selector-labels-match-template-metadata-labels` | Deployment |
| `statefulset-pod-selector-labels-match-template-metadata-labels` | StatefulSet |

The HorizontalPodAutoscaler and Service objects found in the input are used
by the HPA and serviceName checks.

### Output formats

Choose the output with `--output-format` (`-o`):

- `human` (default): a plain text report grouped per object, wrapped to the
  terminal width (80 columns when it cannot be detected)
- `ci`: one line per finding, easy for other programs to parse
- `json`: a JSON document; `--output-version v2` is the default, `v1` is also
  available
- `sarif`: a SARIF 2.1.0 report containing the warnings and critical findings

```
kube-score score -o ci deployment.yaml
kube-score score -o json --output-version v1 deployment.yaml
kube-score score -o sarif deployment.yaml
```

### Flags for `score`

- `-v`, `--verbose`: also show passing checks; give it twice to also show
  skipped ones (human output)
- `--ignore-test ID`: disable a check; repeatable, values may be comma separated
- `--enable-optional-test ID`: enable an optional check; repeatable
- `--exit-one-on-warning`: exit with code 1 when any warning is found
- `--disable-ignore-checks-annotations`: ignore the `kube-score/ignore`
  annotation
- `--disable-optional-checks-annotations`: ignore the `kube-score/enable`
  annotation
- `--kubernetes-version vN.NN`: must be in `vN.NN` or `N.NN` form (default
  `v1.18`)
- `--help`: print the flags

An object can switch checks off for itself with a comma separated list of
check IDs in its `kube-score/ignore` annotation, and switch optional checks
on with `kube-score/enable`.

The process exits with code 1 when any check is critical, or when a file
cannot be read or parsed.

### Other commands

```
kube-score list       # print a CSV list of all checks: id, target, comment, default/optional
kube-score version    # print the version
kube-score help       # print usage
```

Run as `kubectl-score` (or through kubectl as `kubectl score`), the `score`
command is the default: `kubectl score file.yaml` is the same as
`kube-score score file.yaml`.

## Library use

```python
from kubescore.config import Configuration
from kubescore.parser import Parser

with open("manifest.yaml") as fh:
    objects = Parser().parse_text(Configuration(), "manifest.yaml", fh.read())

for deployment in objects.deployments:
    print(deployment.object_meta().name, deployment.location.line)
```

`Parser.parse_files` reads every stream in `Configuration.all_files`.
Decoding problems raise `kubescore.parser.ParseError`.

The check functions in `kubescore.apps` take a decoded manifest dict and
return a `kubescore.domain.TestScore`. `kubescore.checks.Checks` is the
registry they are added to with `kubescore.apps.register`.

The renderers `kubescore.ci`, `kubescore.human`, `kubescore.json_v2` and
`kubescore.sarif_report` each provide a `render` function that takes a
`kubescore.domain.Scorecard` and returns the report as a string.

## What it does not do

- Only `apps/v1` Deployments and StatefulSets are scored. Pods, Jobs,
  CronJobs, DaemonSets, Services, Ingresses, NetworkPolicies,
  PodDisruptionBudgets and HorizontalPodAutoscalers are parsed, but no checks
  of their own are run and they do not appear in the report.
- There are no container checks (resources, probes, images, security
  context). `--ignore-container-cpu-limit` and
  `--ignore-container-memory-limit` are accepted but change nothing, and
  `--kubernetes-version` is validated but no check depends on it.
- None of the six checks is optional, so `--enable-optional-test` and the
  `kube-score/enable` annotation currently have no effect.
- The human output has no colour.