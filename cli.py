import argparse
import logging
import os
from typing import Optional, Sequence

from db import SettingsRepository
from algorithms.math_tools import MathTools
from algorithms.weight_converter import WeightConverter
from rest_api import GymAPI
from seed_sample_data import seed


def show_suggestions(db_path: str, yaml_path: str, prescription_id: str) -> None:
    api = GymAPI(db_path, yaml_path)
    unit = api.settings.get_text("weight_unit", "kg")
    for s in api.progression.suggestions_for(prescription_id):
        line = f"[{s.confidence.value}] {s.message}"
        if s.target_weight is not None:
            line += f" ({WeightConverter.format_weight(s.target_weight, unit)})"
        print(line)


def training_week(
    db_path: str,
    yaml_path: str,
    week: Optional[int] = None,
    advance: bool = False,
    restart: bool = False,
) -> None:
    api = GymAPI(db_path, yaml_path)
    if restart:
        cycle = api.planner.restart_program()
    elif advance:
        cycle = api.planner.advance_week()
    elif week is not None:
        cycle = api.planner.set_week(week)
    else:
        cycle = api.planner.cycle()
    print(f"Week {cycle['week']} - {cycle['label']}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Iron Log utility commands")
    parser.add_argument("--db", default=os.environ.get("IRONLOG_DB", "workout.db"))
    parser.add_argument("--yaml", default="settings.yaml")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("seed")

    sug = sub.add_parser("suggest")
    sug.add_argument("--prescription", required=True)

    e1 = sub.add_parser("e1rm")
    e1.add_argument("--weight", type=float, required=True)
    e1.add_argument("--reps", type=int, required=True)

    conv = sub.add_parser("convert")
    conv.add_argument("--weight", type=float, required=True)
    conv.add_argument("--unit", choices=["kg", "lb"], required=True)

    wk = sub.add_parser("week")
    group = wk.add_mutually_exclusive_group()
    group.add_argument("--set", dest="week", type=int)
    group.add_argument("--advance", action="store_true")
    group.add_argument("--restart", action="store_true")

    srv = sub.add_parser("serve")
    srv.add_argument("--host", default="127.0.0.1")
    srv.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    if args.cmd not in ("e1rm", "convert"):
        level = SettingsRepository(args.db, args.yaml).get_text("log_level", "INFO")
        logging.basicConfig(
            level=getattr(logging, level.upper(), logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    try:
        if args.cmd == "seed":
            seed(args.db, args.yaml)
        elif args.cmd == "suggest":
            show_suggestions(args.db, args.yaml, args.prescription)
        elif args.cmd == "e1rm":
            print(f"{MathTools.e1rm(args.weight, args.reps):.1f}")
        elif args.cmd == "convert":
            if args.unit == "kg":
                print(f"{args.weight} kg = {WeightConverter.kg_to_lb(args.weight)} lb")
            else:
                print(f"{args.weight} lb = {WeightConverter.lb_to_kg(args.weight)} kg")
        elif args.cmd == "week":
            training_week(args.db, args.yaml, args.week, args.advance, args.restart)
        elif args.cmd == "serve":
            import uvicorn

            uvicorn.run(GymAPI(args.db, args.yaml).app, host=args.host, port=args.port)
    except ValueError as e:
        parser.exit(1, f"error: {e}\n")


if __name__ == "__main__":
    main()
