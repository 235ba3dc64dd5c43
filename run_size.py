from __future__ import annotations
import cargo_size.main as _cli_mod

def main():
    # `python run_size.py [size] [--release] ...` — тот же вход, что и у cargo-size
    _cli_mod.main()

if __name__ == "__main__":
    main()
