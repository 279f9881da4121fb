# shared/console.py


def print_banner(title: str, output_fn=print) -> None:
    output_fn()
    output_fn("=" * 79)
    output_fn("= " + title)
    output_fn("-" * 79)
