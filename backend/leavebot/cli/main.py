"""CLI entrypoint for leavebot."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

import requests
import typer

app = typer.Typer(name="leavebot", help="Leave policy assistant command-line interface")

DEFAULT_HOST = "http://127.0.0.1:8000"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("LEAVEBOT_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    resp = requests.request(method, url, timeout=120, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


@app.command()
def ingest(
    path: Path = typer.Argument(..., help="File or directory of policy documents"),
    country: Optional[str] = typer.Option(None, "--country", help="Country code to tag the documents with"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Index policy documents from disk."""
    body: dict[str, object] = {"paths": [str(path.expanduser().resolve())]}
    if country:
        body["country_code"] = country
    resp = _request("POST", "/ingest", host=host, json=body)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def search(
    q: str = typer.Argument(..., help="Query text"),
    country: Optional[str] = typer.Option(None, "--country", help="Country partition to search"),
    top_k: Optional[int] = typer.Option(None, "--top-k", help="Number of chunks to return"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show the policy chunks retrieved for a query."""
    payload: dict[str, object] = {"query": q}
    if country:
        payload["country_code"] = country
    if top_k is not None:
        payload["top_k"] = top_k
    resp = _request("POST", "/search", host=host, json=payload)
    typer.echo(json.dumps(resp.json(), indent=2))


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question about leave policy"),
    country: Optional[str] = typer.Option(None, "--country", help="Country partition to answer from"),
    user: Optional[str] = typer.Option(None, "--user", help="Requester id for history and rate limiting"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Ask the policy assistant a question."""
    payload: dict[str, object] = {"question": question}
    if country:
        payload["country_code"] = country
    if user:
        payload["user_id"] = user
    resp = _request("POST", "/ask", host=host, json=payload)
    typer.echo(resp.json()["answer"])


@app.command()
def delete(
    document_id: str = typer.Argument(..., help="Document identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Delete a document and its chunks."""
    resp = _request("DELETE", f"/documents/{document_id}", host=host)
    typer.echo(json.dumps(resp.json()))


if __name__ == "__main__":
    app()
