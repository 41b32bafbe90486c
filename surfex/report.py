from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from surfex.models import Hunt


def _status(status: int) -> str:
    color = "green" if status <= 299 else "red"
    return f"[{color}]{status}[/{color}]"


def build_tree(hunt: Hunt, show_all: bool = False) -> Optional[Tree]:
    """Render scanned targets; paths with status >= 300 only when show_all."""
    root = Tree("[bold]hunt[/bold]", hide_root=True)
    shown = 0

    for host, target in sorted(hunt.targets.items()):
        if not target.ports:
            continue
        shown += 1
        t_node = root.add(f"[bold]{escape(host)}[/bold]")

        for number, port in sorted(target.ports.items()):
            label = f"[bold]:{number}[/bold]  [dim]{escape(port.name)}[/dim]"
            if port.version:
                label += f"  [magenta]{escape(port.version)}[/magenta]"
            p_node = t_node.add(label)

            if port.crlf_vulns:
                crlf = p_node.add("[bold white on red] CRLF vulns [/bold white on red]")
                for url in port.crlf_vulns:
                    crlf.add(f"[red]{escape(url)}[/red]")

            for path, hp in sorted((port.paths or {}).items()):
                if not show_all and hp.status >= 300:
                    continue
                line = f"[bold]{escape(path)}[/bold]  {_status(hp.status)}"
                if hp.content_type == "text/html":
                    line += f"  [yellow]{escape(hp.content_type)}[/yellow]"
                elif hp.content_type:
                    line += f"  [bright_yellow]{escape(hp.content_type)}[/bright_yellow]"
                if hp.tech:
                    line += f"  [magenta]{escape(', '.join(hp.tech))}[/magenta]"
                if hp.title:
                    line += f"  [blue]{escape(hp.title)}[/blue]"
                h_node = p_node.add(line)

                if hp.xss:
                    x_node = h_node.add("[bold white on red] XSS vulns [/bold white on red]")
                    for poc in hp.xss:
                        x_node.add(f"?[red]{escape(poc.param)}[/red]={escape(poc.payload)}")

    return root if shown else None


def print_hunt(hunt: Hunt, show_all: bool = False, console: Optional[Console] = None) -> None:
    console = console or Console()
    tree = build_tree(hunt, show_all)
    if tree is None:
        console.print("[yellow]No results yet. Run a hunt pass first.[/yellow]")
        return
    console.print(tree)
