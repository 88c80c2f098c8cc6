"""papers -- typed clients for the OpenAlex and Zotero scholarly-metadata APIs.

Both clients share one request/response pipeline: typed parameter objects are
turned into immutable request descriptors, looked up in an optional on-disk
response cache, sent through a retrying ``httpx`` transport, and decoded into
tolerant Pydantic models. List endpoints page with either offset or cursor
pagination and can be consumed as lazy item streams.

Typical usage::

    from papers.openalex import OpenAlexClient, make_list_params

    with OpenAlexClient(api_key="...") as client:
        page = client.list_entities("works", make_list_params(search="graphene"))
        for work in client.list_entities_stream("works", make_list_params(cursor="*")):
            ...

Modules:
    app: Typer application and ``papers`` console-script entry point.
    models: Pydantic configuration models shared across the package.
    config: XDG-aware configuration and credential resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    selection: Named paper selections saved under the data directory.
"""

__version__ = "0.1.0"
