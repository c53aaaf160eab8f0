"""Human-readable documentation served by the UMP lookup service."""

UMP_LOOKUP_DOCS = """\
# UMP Lookup Service

Finds the current token for a User Management Protocol (UMP) account.

UMP account tokens are push-drop outputs admitted under the `tm_users` topic.
Field 6 of each token is the presentation key hash and field 7 is the
recovery key hash. The service indexes both and forgets an output as soon as
it is spent or evicted.

## Queries

Send exactly one of the following keys:

- `presentationHash`: hex presentation key hash.
- `recoveryHash`: hex recovery key hash.
- `outpoint`: `"<txid>.<outputIndex>"`, for example `"abc123.2"`.

If more than one key is given, `presentationHash` is used first, then
`recoveryHash`, then `outpoint`.

## Results

A list holding at most one `{"txid", "outputIndex"}` reference. When several
unspent tokens match, the most recently admitted one is returned. An empty
list means no unspent token matches.

## Example

```json
{"presentationHash": "6a0e..."}
```
"""
