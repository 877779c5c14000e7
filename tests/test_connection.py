import unittest

from neuroreflex.controllers import NeuralController
from neuroreflex.controllers.connection import (
    ConnectionKind,
    ConnectionRule,
    SynergyPolicy,
    fix_layer_name,
    parse_connection_kind,
)
from neuroreflex.core.config import ConfigurationError, InputConfig, NeuralControllerConfig
from neuroreflex.core.types import Side
from neuroreflex.params import ParameterBinding

from .fake_model import FakeModel


def build(data, model=None, seed=1):
    model = model or FakeModel()
    config = NeuralControllerConfig.from_dict(data)
    return NeuralController(config, ParameterBinding(seed=seed), model), model


def length_controller(motor_inputs, include="*", **kwargs):
    return build({
        "default_delay": 0.02,
        "sensor_layers": [{"type": "L", "include": include}],
        "motor_layer": {"inputs": motor_inputs},
        **kwargs,
    })


class TestConnectionRules(unittest.TestCase):
    """Parsing of connection rule declarations."""

    def test_kinds(self):
        self.assertIs(parse_connection_kind("protagonistic"), ConnectionKind.AGONISTIC)
        self.assertIs(parse_connection_kind("contralateral"), ConnectionKind.CONTRALATERAL)
        with self.assertRaises(ConfigurationError):
            parse_connection_kind("diagonal")

    def test_layer_names(self):
        self.assertEqual(fix_layer_name("1"), "N1")
        self.assertEqual(fix_layer_name("0"), "0")
        self.assertEqual(fix_layer_name("CPG"), "CPG")

    def test_rule_defaults(self):
        rule = ConnectionRule.from_config(InputConfig(connect="bilateral"))
        self.assertEqual(rule.input_layer, "0")
        rule = ConnectionRule.from_config(InputConfig(source="soleus"))
        self.assertIs(rule.kind, ConnectionKind.SOURCE)
        rule = ConnectionRule.from_config(InputConfig(connect="ipsilateral", input_layer="2"))
        self.assertEqual(rule.input_layer, "N2")

    def test_source_rule_requires_name(self):
        with self.assertRaises(ConfigurationError):
            ConnectionRule.from_config(InputConfig(connect="source"))


class TestConnectionResolver(unittest.TestCase):
    """Admission of candidate sources and shared parameter naming."""

    def setUp(self):
        self.controller, self.model = length_controller([{"connect": "bilateral", "gain": "1~0.5"}])
        self.sensors = self.controller.graph.layer("0")
        self.motors = {n.name: n for n in self.controller.graph.layer("motor")}
        self.resolver = self.controller.connections

    def admitted(self, target, kind, type_pattern="*"):
        rule = ConnectionRule(kind=kind, type_pattern=type_pattern)
        return {c.name for c in self.sensors if self.resolver.admits(self.motors[target], c, rule)}

    def test_ipsilateral_and_contralateral_are_complementary(self):
        sideless = {c.name for c in self.sensors if c.side is Side.NONE}
        self.assertEqual(sideless, {"lumbar_ext.L"})
        for target in ("soleus_l", "gastroc_r", "lumbar_ext"):
            ipsi = self.admitted(target, ConnectionKind.IPSILATERAL)
            contra = self.admitted(target, ConnectionKind.CONTRALATERAL)
            self.assertEqual(ipsi | contra, self.admitted(target, ConnectionKind.BILATERAL))
            self.assertEqual(ipsi & contra, sideless)

    def test_monosynaptic_admits_self_index(self):
        for target in self.motors:
            self.assertEqual(self.admitted(target, ConnectionKind.MONOSYNAPTIC), {f"{target}.L"})

    def test_monosynaptic_without_matching_source(self):
        controller, _ = build({
            "default_delay": 0.02,
            "sensor_layers": [{"type": "L", "exclude": "soleus*"}],
            "motor_layer": {"inputs": [{"connect": "monosynaptic", "gain": 1.0}]},
        })
        motors = {n.name: n for n in controller.graph.layer("motor")}
        self.assertEqual(motors["soleus_l"].inputs, [])
        self.assertEqual(len(motors["gastroc_l"].inputs), 1)

    def test_monosynaptic_ignores_dof_sensors(self):
        controller, model = build({
            "default_delay": 0.02,
            "sensor_layers": [{"type": "L"}, {"type": "DP"}],
            "motor_layer": {"inputs": [{"connect": "monosynaptic", "gain": 1.0}]},
        })
        for motor in controller.graph.layer("motor"):
            sources = [controller.graph.node(i.source).name for i in motor.inputs]
            self.assertEqual(sources, [f"{motor.name}.L"])
        self.assertEqual(len(controller.graph.layer("motor")), len(model.actuator_names()))

    def test_type_pattern(self):
        self.assertEqual(self.admitted("soleus_l", ConnectionKind.BILATERAL, "F;V"), set())
        self.assertEqual(len(self.admitted("soleus_l", ConnectionKind.BILATERAL, "L")), len(self.sensors))

    def test_anatomical_relations(self):
        self.assertEqual(self.admitted("soleus_l", ConnectionKind.ANTAGONISTIC), {"tib_ant_l.L"})
        self.assertEqual(
            self.admitted("soleus_l", ConnectionKind.AGONISTIC),
            {"soleus_l.L", "gastroc_l.L"},
        )

    def test_synergy_policy(self):
        shared_joint = self.admitted("iliopsoas_l", ConnectionKind.SYNERGETIC)
        self.assertIn("adductor_l.L", shared_joint)
        self.controller.connections.synergy_policy = SynergyPolicy.SHARED_DOF
        shared_dof = self.admitted("iliopsoas_l", ConnectionKind.SYNERGETIC)
        self.assertNotIn("adductor_l.L", shared_dof)
        self.assertIn("glut_max_l.L", shared_dof)

    def test_source_by_name(self):
        rule = ConnectionRule(kind=ConnectionKind.SOURCE, source="gastroc")
        admitted = {c.name for c in self.sensors if self.resolver.admits(self.motors["soleus_l"], c, rule)}
        self.assertEqual(admitted, {"gastroc_l.L", "gastroc_r.L"})

    def test_none_admits_nothing(self):
        self.assertEqual(self.admitted("soleus_l", ConnectionKind.NONE), set())

    def test_symmetric_names_and_gains(self):
        sensors = {c.name: c for c in self.sensors}
        left = self.resolver.parameter_names(self.motors["soleus_l"], sensors["gastroc_l.L"])
        right = self.resolver.parameter_names(self.motors["soleus_r"], sensors["gastroc_r.L"])
        self.assertEqual(left, right)
        self.assertEqual([n for n, _ in left], ["ankle_angle-.knee_angle-ankle_angle-.L"])

        gains_l = [i.gain for i in self.motors["soleus_l"].inputs]
        gains_r = [i.gain for i in self.motors["soleus_r"].inputs]
        self.assertEqual(len(gains_l), len(self.sensors))
        self.assertEqual(sorted(gains_l), sorted(gains_r))

    def test_identical_contributions_collapse(self):
        sensors = {c.name: c for c in self.sensors}
        names = self.resolver.parameter_names(self.motors["soleus_l"], sensors["soleus_l.L"])
        self.assertEqual(names, [("ankle_angle-.L", 1.0)])

    def test_contralateral_names_are_shared(self):
        sensors = {c.name: c for c in self.sensors}
        left = self.resolver.parameter_names(self.motors["soleus_l"], sensors["soleus_r.L"])
        right = self.resolver.parameter_names(self.motors["soleus_r"], sensors["soleus_l.L"])
        self.assertEqual(left, [("ankle_angle-.ankle_angle-_contra.L", 1.0)])
        self.assertEqual(left, right)

    def test_distinct_axes_of_one_joint_are_skipped(self):
        sensors = {c.name: c for c in self.sensors}
        names = self.resolver.parameter_names(self.motors["glut_med_l"], sensors["glut_med_l.L"])
        self.assertEqual([n for n, _ in names], ["hip_flexion+.L", "hip_adduction-.L"])
        self.assertAlmostEqual(sum(w for _, w in names), 1.0)

    def test_gain_and_offset_accumulate_over_contributions(self):
        controller, _ = length_controller([{"connect": "monosynaptic", "gain": 2.0, "offset": 0.5}])
        motors = {n.name: n for n in controller.graph.layer("motor")}
        (i,) = motors["glut_med_l"].inputs
        self.assertAlmostEqual(i.gain, 2.0)
        self.assertAlmostEqual(i.offset, 0.5)
        self.assertIn("hip_flexion+.L0", controller.params)


if __name__ == "__main__":
    unittest.main()
