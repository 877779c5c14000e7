import unittest
from concurrent.futures import ThreadPoolExecutor

from neuroreflex.controllers import NeuralController, create_controller
from neuroreflex.core.base import ControllerState
from neuroreflex.core.config import ConfigurationError, NeuralControllerConfig, controller_config_from_dict
from neuroreflex.core.types import Side
from neuroreflex.params import ParameterBinding

from .fake_model import FakeModel

INTER_CONFIG = {
    "type": "NeuralController",
    "delays": {"soleus": 0.02, "lumbar_ext": 0.01},
    "delay_factor": 2.0,
    "sensor_layers": [{"type": "L", "include": "soleus*;lumbar_ext"}],
    "inter_layers": [{
        "name": "1",
        "neurons": 1,
        "inputs": [{"connect": "ipsilateral", "type": "L", "gain": 0.5}],
    }],
    "motor_layer": {"inputs": [{"connect": "ipsilateral", "input_layer": "1", "gain": 1.0}]},
}


def build(data, model=None, seed=0):
    model = model or FakeModel()
    config = controller_config_from_dict({"type": "NeuralController", **data})
    params = ParameterBinding(seed=seed)
    return create_controller(config, params, model), params, model


class TestNeuralControllerConstruction(unittest.TestCase):
    """Layer population and parameter naming."""

    def test_layers(self):
        controller, _, model = build(INTER_CONFIG)
        self.assertIsInstance(controller, NeuralController)
        graph = controller.graph
        self.assertEqual(list(graph.layers), ["0", "N1", "motor"])
        self.assertEqual([n.name for n in graph.layer("0")], ["lumbar_ext.L", "soleus_l.L", "soleus_r.L"])
        self.assertEqual([n.name for n in graph.layer("N1")], ["N1_0_l", "N1_0_r"])
        self.assertEqual(len(graph.layer("motor")), len(model.actuator_names()))
        self.assertEqual(controller.get_signature(), "NC.virtual.N1x2")

    def test_sensor_delays(self):
        controller, _, _ = build(INTER_CONFIG)
        delays = {n.name: n.payload.delay for n in controller.graph.layer("0")}
        self.assertEqual(delays, {"lumbar_ext.L": 0.02, "soleus_l.L": 0.04, "soleus_r.L": 0.04})

    def test_missing_delay(self):
        with self.assertRaises(ConfigurationError):
            build({**INTER_CONFIG, "sensor_layers": [{"type": "L", "include": "gastroc*"}]})
        controller, _, _ = build({
            **INTER_CONFIG,
            "default_delay": 0.05,
            "sensor_layers": [{"type": "L", "include": "gastroc*"}],
        })
        self.assertEqual({n.payload.delay for n in controller.graph.layer("0")}, {0.1})

    def test_dof_sensors(self):
        controller, _, model = build({
            "default_delay": 0.01,
            "sensor_layers": [{"type": "DP", "include": "ankle*"}, {"type": "DV", "include": "ankle*"}],
        })
        sensors = controller.graph.layer("0")
        self.assertEqual([n.name for n in sensors], [
            "ankle_angle_l.DP", "ankle_angle_r.DP", "ankle_angle_l.DV", "ankle_angle_r.DV",
        ])
        self.assertEqual(sensors[0].index, model.dof_names().index("ankle_angle_l"))
        self.assertIsNone(sensors[0].actuator)

    def test_motor_offsets_are_shared(self):
        controller, params, _ = build({"motor_layer": {"offset": 0.2}})
        motors = {n.name: n for n in controller.graph.layer("motor")}
        self.assertAlmostEqual(motors["soleus_l"].offset, 0.2)
        self.assertEqual(motors["soleus_l"].offset, motors["soleus_r"].offset)
        self.assertIn("ankle_angle-.C0", params)
        self.assertIn("knee_angle-ankle_angle-.C0", params)
        self.assertAlmostEqual(motors["glut_med_l"].offset, 0.2 * (0.01 + 0.05) / 0.0026 ** 0.5)

    def test_muscle_parameter_mode(self):
        _, params, _ = build({
            "parameter_mode": "muscle",
            "default_delay": 0.01,
            "sensor_layers": [{"type": "F"}],
            "motor_layer": {"inputs": [{"connect": "monosynaptic", "type": "F", "gain": "1~0.1"}]},
        })
        self.assertIn("soleus.F", params)
        self.assertNotIn("soleus_l.F", params)

    def test_pattern_layer(self):
        controller, params, _ = build({
            "pattern_layer": {"neurons": 2, "t0": "0.1~0.05", "period": 1.0, "sigma": 0.2},
            "motor_layer": {"inputs": [{"connect": "ipsilateral", "input_layer": "CPG", "gain": 1.0}]},
        })
        nodes = {n.name: n for n in controller.graph.layer("CPG")}
        self.assertEqual(list(nodes), ["CPG0_l", "CPG0_r", "CPG1_l", "CPG1_r"])
        self.assertEqual(nodes["CPG0_l"].side, Side.LEFT)
        self.assertAlmostEqual(nodes["CPG0_r"].payload.t0, params.get("CPG0.t0") + 0.5)
        self.assertEqual([i.is_free for i in params.infos() if i.name.startswith("CPG")],
                         [False, False, True, True])
        motors = {n.name: n for n in controller.graph.layer("motor")}
        self.assertEqual(len(motors["soleus_l"].inputs), 2)
        self.assertEqual(motors["lumbar_ext"].inputs, [])

    def test_configuration_errors(self):
        bad = [
            {"motor_layer": {"inputs": [{"connect": "ipsilateral", "input_layer": "5"}]}},
            {"motor_layer": {"inputs": [{"connect": "sideways"}]}},
            {"motor_layer": {"activation": "step"}},
            {"default_delay": 0.01, "sensor_layers": [{"type": "X"}]},
            {"parameter_mode": "joint"},
            {"synergy_policy": "any"},
            {"inter_layers": [{"name": "1"}, {"name": "1"}]},
            {"pattern_layer": {"period": 0.0}},
            {"sensor_layer": []},
        ]
        for data in bad:
            with self.assertRaises(ConfigurationError, msg=str(data)):
                build(data)

    def test_own_layer_references_earlier_nodes_only(self):
        controller, _, _ = build({
            "inter_layers": [{"name": "1", "neurons": 2, "inputs": [{"connect": "bilateral", "input_layer": "1", "gain": 1.0}]}],
        })
        for node in controller.graph.layer("N1"):
            self.assertEqual([i.source.position for i in node.inputs], list(range(node.handle.position)))


class TestNeuralControllerEvaluation(unittest.TestCase):
    """Per-step evaluation of the layered controller."""

    def setUp(self):
        self.controller, self.params, self.model = build(INTER_CONFIG)
        self.model.set_sensor("L", "soleus_l", 1.0)
        self.model.set_sensor("L", "soleus_r", 2.0)
        self.model.set_sensor("L", "lumbar_ext", 0.4)

    def test_update_controls(self):
        self.controller.update_controls(self.model, 0.0)
        self.assertIs(self.controller.state, ControllerState.EVALUATING)
        self.assertAlmostEqual(self.model.inputs["soleus_l"], 0.7)
        self.assertAlmostEqual(self.model.inputs["soleus_r"], 1.2)
        self.assertEqual(self.model.inputs["lumbar_ext"], 0.0)
        self.assertAlmostEqual(self.controller.motor_outputs()["soleus_r"], 1.2)

    def test_repeated_steps_are_deterministic(self):
        outputs = []
        for _ in range(3):
            self.model.inputs.clear()
            self.controller.update_controls(self.model, 0.0)
            outputs.append(dict(self.model.inputs))
        self.assertEqual(outputs[0], outputs[1])
        self.assertEqual(outputs[1], outputs[2])

    def test_contributions(self):
        self.controller.update_controls(self.model, 0.0)
        self.controller.update_controls(self.model, 0.01)
        report = self.controller.contributions()
        self.assertAlmostEqual(report["N1_0_l"]["soleus_l.L"], 2 * 0.5)
        self.assertAlmostEqual(report["soleus_r"]["N1_0_r"], 2 * 1.2)

    def test_finalize(self):
        self.controller.update_controls(self.model, 0.0)
        self.controller.finalize()
        self.assertIs(self.controller.state, ControllerState.FINALIZED)
        with self.assertRaises(RuntimeError):
            self.controller.update_controls(self.model, 0.01)

    def test_parallel_instances_are_independent(self):
        config = NeuralControllerConfig.from_dict({
            "default_delay": 0.02,
            "sensor_layers": [{"type": "L"}],
            "motor_layer": {"inputs": [{"connect": "bilateral", "gain": "0.5~0.2"}]},
        })

        def run(seed):
            model = FakeModel()
            for i, name in enumerate(model.actuator_names()):
                model.set_sensor("L", name, 0.1 * i)
            controller = NeuralController(config, ParameterBinding(seed=seed), model)
            for step in range(5):
                model.inputs.clear()
                controller.update_controls(model, 0.01 * step)
            return dict(model.inputs)

        expected = [run(seed) for seed in range(8)]
        with ThreadPoolExecutor(max_workers=4) as executor:
            results = list(executor.map(run, range(8)))
        self.assertEqual(results, expected)


if __name__ == "__main__":
    unittest.main()
