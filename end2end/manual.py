"""Manual pages shown by ``-M/--manual``, rendered with rich."""

from __future__ import annotations

END2END_MANUAL = """\
# check_end2end

Simple configurable end-to-end probe plugin for Nagios-compatible hosts.

## The check

Every step configured in the step file is performed and checked for
success, whether or not a time threshold applies to it. A step succeeds when
the HTTP response has a 2xx status; anything else, or a connection error, is
a failure.

A failure stops the plugin at once with a CRITICAL status unless the step's
`on_failure` says otherwise. Steps above their time thresholds do not stop
the run: the remaining steps are still performed, unless the global timeout
(`-t`) expires. The overall status is reported at the end.

## Threshold formats

### -C <CRIT>, -W <WARN>

Total-duration thresholds are single values in the monitoring-plugins range
format (`[@]start:end`). For example `-W 0.200:1.0` warns when the whole
process took less than 0.2s or more than 1.0s.

### -c <crit>, -w <warn>

Per-step duration thresholds. **A single value applies to every step.**

A comma-separated list applies in order, one value per step; omitted values
mean no threshold for that step. For a 5-step check:

    -w ,0.2,,,0.5 -c ,0.6,1.1

gives the second step a warning of 0.2s and a critical of 0.6s, the third
step a critical of 1.1s and the fifth step a warning of 0.5s. To set a
threshold for the first step only, keep a trailing comma: `-w 0.7,`.

## Step file format

```yaml
shortname: "Check www.example.com Login"   # optional
user_agent: "Nagios login check"             # optional
vars:
  BASE_URL: "https://www.example.com"
steps:
  "00 - Public login page":
    url: "${BASE_URL}/login.html"
    method: GET
    on_failure: WARNING
  "01 - Login verification":
    url: "${BASE_URL}/login.html"
    method: POST
    binary_data: "username=exampleuser&password=examplepassword"
```

Steps are performed **in alphabetical order of their names**.

* `url` (required): the URL to request.
* `method`: HTTP method, GET by default.
* `binary_data`: URL-encoded form data, for methods that send a body.
* `on_failure`: OK, WARNING, CRITICAL (default) or UNKNOWN. OK only records
  the failure, WARNING raises the check to at least WARNING and goes on,
  CRITICAL and UNKNOWN stop the check immediately with that status.

`$NAME` and `${NAME}` are replaced with values from `vars`. Names not
defined there come from `--var NAME=VALUE`, then from the environment when
`-e` (or any `--var`) is given. An undefined variable is an error unless `-E`
is given.
"""

CERTIFICATES_MANUAL = """\
# check_certificates

Connects to each `HOST[:PORT]` (443 by default) with TLS and reports the
outcome per target.

* `--verify` validates the certificate chain and checks every certificate
  that names an OCSP responder; a revoked certificate is a failure.
* `--proxyHost` (and `--proxyPort`, `--proxyUser`, `--proxyPassword`)
  tunnel the connection through an HTTP proxy with `CONNECT`; `-P` takes the
  proxy from `https_proxy` instead.
* `-w`/`-c` are connect-duration thresholds, per target, with the same rules
  as check_end2end's per-step thresholds.
* `--on-failure` decides what a failed target means (CRITICAL by default).
"""
