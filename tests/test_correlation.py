import unittest

from neuroreflex.controllers.correlation import CorrelationResolver, ParameterMode, Role
from neuroreflex.core.config import ConfigurationError

from .fake_model import FakeModel


class TestCorrelationResolver(unittest.TestCase):
    """Decomposition of actuators into virtual muscle contributions."""

    def setUp(self):
        self.model = FakeModel()

    def names(self, mode, actuator, role=Role.TARGET):
        resolver = CorrelationResolver(self.model, mode)
        return [(c.name, round(c.correlation, 4)) for c in resolver.decompose(actuator, role)]

    def test_single_axis_actuator(self):
        self.assertEqual(self.names(ParameterMode.VIRTUAL, "soleus_l"), [("ankle_angle-", 1.0)])
        self.assertEqual(self.names(ParameterMode.VIRTUAL, "tib_ant_r"), [("ankle_angle+", 1.0)])

    def test_biarticular_chain(self):
        resolver = CorrelationResolver(self.model, ParameterMode.VIRTUAL)
        (c,) = resolver.decompose("gastroc_l", Role.TARGET)
        self.assertEqual(c.name, "knee_angle-ankle_angle-")
        self.assertAlmostEqual(c.correlation, 1.0)
        self.assertEqual(c.dofs, ("knee_angle_l", "ankle_angle_l"))

    def test_multi_axis_joint_is_split(self):
        contributions = self.names(ParameterMode.VIRTUAL, "glut_med_l")
        self.assertEqual([n for n, _ in contributions], ["hip_flexion+", "hip_adduction-"])
        self.assertAlmostEqual(contributions[0][1], 0.01 / (0.0026 ** 0.5), places=4)
        self.assertAlmostEqual(contributions[1][1], 0.05 / (0.0026 ** 0.5), places=4)

    def test_weights_within_unit_range(self):
        resolver = CorrelationResolver(self.model, ParameterMode.VIRTUAL)
        for actuator in self.model.actuator_names():
            for c in resolver.decompose(actuator, Role.TARGET):
                self.assertLessEqual(abs(c.correlation), 1.0)

    def test_repeated_joint_is_visited_once(self):
        class RepeatingJoints(FakeModel):
            def joints(self, actuator):
                chain = super().joints(actuator)
                return chain + chain

        plain = CorrelationResolver(self.model, ParameterMode.VIRTUAL)
        repeating = CorrelationResolver(RepeatingJoints(), ParameterMode.VIRTUAL)
        for actuator in ("hamstrings_l", "gastroc_r", "glut_med_l"):
            contributions = repeating.decompose(actuator, Role.TARGET)
            for c in contributions:
                self.assertEqual(len(c.dofs), len(set(c.dofs)))
            self.assertEqual(contributions, plain.decompose(actuator, Role.TARGET))

        (c,) = repeating.decompose("hamstrings_l", Role.TARGET)
        self.assertEqual(c.name, "hip_flexion-knee_angle-")
        self.assertAlmostEqual(c.correlation, 1.0)

    def test_muscle_mode(self):
        self.assertEqual(self.names(ParameterMode.MUSCLE, "gastroc_r"), [("gastroc", 1.0)])

    def test_dof_mode(self):
        contributions = self.names(ParameterMode.DOF, "gastroc_l")
        self.assertEqual([n for n, _ in contributions], ["knee_angle-", "ankle_angle-"])
        self.assertAlmostEqual(sum(w * w for _, w in contributions), 1.0, places=3)

    def test_virtual_dof_mode_depends_on_role(self):
        self.assertEqual(
            [n for n, _ in self.names(ParameterMode.VIRTUAL_DOF, "hamstrings_l", Role.TARGET)],
            ["hip_flexion-knee_angle-"],
        )
        self.assertEqual(
            [n for n, _ in self.names(ParameterMode.VIRTUAL_DOF, "hamstrings_l", Role.SENSOR)],
            ["hip_flexion-", "knee_angle-"],
        )

    def test_actuator_without_axis_is_empty(self):
        model = FakeModel(joints={"knee": ["knee_angle"]}, arms={"loose": {}, "vasti": {"knee_angle": 0.04}})
        resolver = CorrelationResolver(model, ParameterMode.VIRTUAL)
        self.assertEqual(resolver.decompose("loose", Role.TARGET), ())

    def test_results_are_memoized_per_instance(self):
        resolver = CorrelationResolver(self.model)
        first = resolver.decompose("gastroc_l", Role.TARGET)
        self.assertIs(resolver.decompose("gastroc_l", Role.TARGET), first)
        other = CorrelationResolver(self.model)
        self.assertIsNot(other.decompose("gastroc_l", Role.TARGET), first)
        self.assertEqual(other.decompose("gastroc_l", Role.TARGET), first)

    def test_unknown_mode(self):
        with self.assertRaises(ConfigurationError):
            ParameterMode.from_name("tendon")


if __name__ == "__main__":
    unittest.main()
