#!/usr/bin/env python3
"""
Command line entry point.

- info: build a controller on a model and show its graph and parameters
- evaluate: run one simulation with a parameter file
- optimize: run CMA-ES on a controller and a DofLimitMeasure
"""

import argparse
import logging
import os

from .controllers import NeuralController, create_controller
from .core.config import load_controller_config
from .core.constants import (
    DEFAULT_CHECKPOINT_EVERY,
    DEFAULT_CMAES_SIGMA,
    DEFAULT_MAX_SENSOR_DELAY,
    DEFAULT_NUM_GENERATIONS,
    DEFAULT_PATIENCE,
    DEFAULT_SIMULATION_DURATION,
)
from .params import ParameterBinding
from .plants import MuJoCoModel
from .training import (
    CMAESConfig,
    DofLimitMeasure,
    DofLimitMeasureConfig,
    SimulationObjective,
    run_cmaes_training,
)


def _binding(args) -> ParameterBinding:
    if getattr(args, "par", None):
        return ParameterBinding.load(args.par, use_mean=True)
    return ParameterBinding(seed=args.seed, use_mean=args.seed is None)


def cmd_info(args):
    """Show the controller built from a configuration on a model."""
    config = load_controller_config(args.config)
    model = MuJoCoModel(args.xml_path, args.max_sensor_delay)
    params = _binding(args)
    controller = create_controller(config, params, model)

    print(f"\n{'='*60}")
    print(f"Controller: {controller.get_signature()}")
    print(f"{'='*60}")
    print(f"\nActuators ({len(model.actuator_names())}):")
    for a in model.actuator_names():
        print(f"  - {a}: joints={list(model.joints(a))}")

    if isinstance(controller, NeuralController):
        print("\nLayers:")
        for name, nodes in controller.graph.layers.items():
            print(f"  {name}: {len(nodes)} nodes")
            if args.verbose:
                for node in nodes:
                    print(f"    - {node.name} ({len(node.inputs)} inputs)")

    free = params.free_infos()
    print(f"\nParameters: {len(params)} total, {len(free)} free")
    if args.verbose:
        for info in params.infos():
            flag = "free" if info.is_free else "fixed"
            print(f"  {info.name} = {params.get(info.name):.4f} ({flag})")


def cmd_evaluate(args):
    """Run one simulation and report the measure."""
    config = load_controller_config(args.config)
    model = MuJoCoModel(args.xml_path, args.max_sensor_delay)
    controller = create_controller(config, _binding(args), model)
    measure = None
    if args.measure:
        measure = DofLimitMeasure(DofLimitMeasureConfig.load(args.measure), model)

    result = model.simulate(controller, args.duration, measure)
    print(f"Simulated {model.get_time():.3f}s with {controller.get_signature()}")
    if measure is not None:
        print(f"Result: {result:.6f}")
        for dof, penalty in measure.report().items():
            print(f"  {dof}: {penalty:.6f}")
    if args.contributions and isinstance(controller, NeuralController):
        for node, sources in controller.contributions().items():
            print(f"  {node}: " + ", ".join(f"{s}={v:.3f}" for s, v in sources.items()))


def cmd_optimize(args):
    """Optimize controller parameters with CMA-ES."""
    config = load_controller_config(args.config)
    measure_config = DofLimitMeasureConfig.load(args.measure)
    objective = SimulationObjective(
        config,
        model_factory=lambda: MuJoCoModel(args.xml_path, args.max_sensor_delay),
        measure_factory=lambda model: DofLimitMeasure(measure_config, model),
        duration=args.duration,
    )
    results = run_cmaes_training(objective, CMAESConfig(
        population_size=args.population,
        sigma_init=args.sigma,
        seed=args.seed,
        num_generations=args.generations,
        patience=args.patience,
        checkpoint_period=args.checkpoint_period,
        num_workers=args.workers,
        output_dir=args.output_dir,
        resume_from=args.resume,
    ))
    print(f"Best cost: {results['best_cost']:.6f} after {results['generations']} generations")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Reflex and neural controllers for musculoskeletal models")
    parser.add_argument("--log-level", default=os.environ.get("NEUROREFLEX_LOG_LEVEL", "INFO"))
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p):
        p.add_argument("config", help="Controller configuration (JSON)")
        p.add_argument("xml_path", help="MuJoCo model file")
        p.add_argument("--seed", type=int, default=None)
        p.add_argument("--max-sensor-delay", type=float, default=DEFAULT_MAX_SENSOR_DELAY,
                       help="Longest sensor delay the model can answer (seconds)")

    p = subparsers.add_parser("info", help="Show controller structure")
    add_common(p)
    p.add_argument("--par", help="Parameter file")
    p.add_argument("-v", "--verbose", action="store_true")
    p.set_defaults(func=cmd_info)

    p = subparsers.add_parser("evaluate", help="Run one simulation")
    add_common(p)
    p.add_argument("--par", help="Parameter file")
    p.add_argument("--measure", help="DofLimitMeasure configuration (JSON)")
    p.add_argument("--duration", type=float, default=DEFAULT_SIMULATION_DURATION)
    p.add_argument("--contributions", action="store_true", help="Print input contributions")
    p.set_defaults(func=cmd_evaluate)

    p = subparsers.add_parser("optimize", help="Optimize parameters with CMA-ES")
    add_common(p)
    p.add_argument("--measure", required=True, help="DofLimitMeasure configuration (JSON)")
    p.add_argument("--duration", type=float, default=DEFAULT_SIMULATION_DURATION)
    p.add_argument("--generations", type=int, default=DEFAULT_NUM_GENERATIONS)
    p.add_argument("--population", type=int, default=None)
    p.add_argument("--sigma", type=float, default=DEFAULT_CMAES_SIGMA)
    p.add_argument("--patience", type=int, default=DEFAULT_PATIENCE)
    p.add_argument("--checkpoint-period", type=int, default=DEFAULT_CHECKPOINT_EVERY)
    p.add_argument("--workers", type=int, default=None)
    p.add_argument("--output-dir", default="outputs/cmaes")
    p.add_argument("--resume", help="Checkpoint to resume from")
    p.set_defaults(func=cmd_optimize)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(threadName)s - %(levelname)s - %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
