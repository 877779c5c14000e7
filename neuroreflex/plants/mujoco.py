"""MuJoCo simulation model - physics and anatomy queries for controllers."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..core.base import Controller, Measure, SimulationModel
from ..core.constants import (
    DEFAULT_MAX_SENSOR_DELAY,
    MOMENT_ARM_EPSILON,
    MOMENT_ARM_THRESHOLD,
    SENSOR_TYPE_DOF_POSITION,
    SENSOR_TYPE_DOF_VELOCITY,
    SENSOR_TYPE_FORCE,
    SENSOR_TYPE_LENGTH,
    SENSOR_TYPE_VELOCITY,
)
from ..core.types import SensorRef
from .delay import DelayedSensorBuffer


class MuJoCoModel(SimulationModel):
    """
    ``SimulationModel`` backed by a MuJoCo model file.

    Every hinge or slide joint of the file is a dof; the dofs of one body form
    one anatomical joint, named after the body. Moment arms are the finite
    difference derivative of actuator length with respect to each dof at the
    initial pose, the convention MuJoCo uses for ``actuator_moment``.
    """

    def __init__(self, xml_path: str, max_sensor_delay: float = DEFAULT_MAX_SENSOR_DELAY):
        import mujoco

        self.xml_path = xml_path
        self._mj_model = mujoco.MjModel.from_xml_path(xml_path)
        self._mj_data = mujoco.MjData(self._mj_model)
        self.dt = float(self._mj_model.opt.timestep)

        m = self._mj_model
        self._actuators = [self._name(mujoco.mjtObj.mjOBJ_ACTUATOR, i, "actuator") for i in range(m.nu)]
        self._actuator_index = {name: i for i, name in enumerate(self._actuators)}
        self._is_muscle = np.array([m.actuator_dyntype[i] == mujoco.mjtDyn.mjDYN_MUSCLE for i in range(m.nu)])

        dof_types = (mujoco.mjtJoint.mjJNT_HINGE, mujoco.mjtJoint.mjJNT_SLIDE)
        self._dofs: List[str] = []
        self._qpos_adr: List[int] = []
        self._qvel_adr: List[int] = []
        self._dof_joint: Dict[str, str] = {}
        self._joint_dofs: Dict[str, List[str]] = {}
        self._joint_order: Dict[str, int] = {}
        for j in range(m.njnt):
            if int(m.jnt_type[j]) not in dof_types:
                continue
            dof = self._name(mujoco.mjtObj.mjOBJ_JOINT, j, "dof")
            body_id = int(m.jnt_bodyid[j])
            joint = self._name(mujoco.mjtObj.mjOBJ_BODY, body_id, "body")
            self._dofs.append(dof)
            self._qpos_adr.append(int(m.jnt_qposadr[j]))
            self._qvel_adr.append(int(m.jnt_dofadr[j]))
            self._dof_joint[dof] = joint
            self._joint_dofs.setdefault(joint, []).append(dof)
            self._joint_order.setdefault(joint, body_id)
        self._dof_index = {name: i for i, name in enumerate(self._dofs)}

        self._moment_arms = self._compute_moment_arms()
        self._actuator_joints = {
            a: [
                joint
                for joint in sorted(self._joint_dofs, key=self._joint_order.get)
                if any(abs(self._moment_arms[i, self._dof_index[d]]) > MOMENT_ARM_THRESHOLD
                       for d in self._joint_dofs[joint])
            ]
            for i, a in enumerate(self._actuators)
        }

        channels = [SensorRef(t, a) for a in self._actuators
                    for t in (SENSOR_TYPE_LENGTH, SENSOR_TYPE_VELOCITY, SENSOR_TYPE_FORCE)]
        channels += [SensorRef(t, d) for d in self._dofs
                     for t in (SENSOR_TYPE_DOF_POSITION, SENSOR_TYPE_DOF_VELOCITY)]
        self._sensors = DelayedSensorBuffer(channels, max_sensor_delay, self.dt)
        self._inputs = np.zeros(m.nu)

        logging.info(
            "Loaded %s: %s actuators, %s dofs, %s joints",
            xml_path, len(self._actuators), len(self._dofs), len(self._joint_dofs),
        )
        self.reset()

    def _name(self, obj_type, idx: int, prefix: str) -> str:
        import mujoco

        return mujoco.mj_id2name(self._mj_model, obj_type, idx) or f"{prefix}{idx}"

    def _compute_moment_arms(self) -> np.ndarray:
        """dL/dq by central differences, shape (actuators, dofs)."""
        import mujoco

        m, d = self._mj_model, self._mj_data
        mujoco.mj_resetData(m, d)
        arms = np.zeros((m.nu, len(self._dofs)))
        for k, adr in enumerate(self._qpos_adr):
            q0 = d.qpos[adr]
            d.qpos[adr] = q0 + MOMENT_ARM_EPSILON
            mujoco.mj_fwdPosition(m, d)
            upper = d.actuator_length.copy()
            d.qpos[adr] = q0 - MOMENT_ARM_EPSILON
            mujoco.mj_fwdPosition(m, d)
            lower = d.actuator_length.copy()
            d.qpos[adr] = q0
            arms[:, k] = (upper - lower) / (2.0 * MOMENT_ARM_EPSILON)
        return arms

    # -------------------------------------------------------------------------
    # SimulationModel interface
    # -------------------------------------------------------------------------

    def get_time(self) -> float:
        return float(self._mj_data.time)

    def get_delayed_value(self, sensor: SensorRef, delay: float) -> float:
        return self._sensors.get(sensor, delay)

    def add_actuator_input(self, actuator: str, value: float) -> None:
        self._inputs[self._actuator_index[actuator]] += value

    def actuator_names(self) -> List[str]:
        return list(self._actuators)

    def dof_names(self) -> List[str]:
        return list(self._dofs)

    def dof_position(self, dof: str) -> float:
        return float(self._mj_data.qpos[self._qpos_adr[self._dof_index[dof]]])

    def dof_velocity(self, dof: str) -> float:
        return float(self._mj_data.qvel[self._qvel_adr[self._dof_index[dof]]])

    def joints(self, actuator: str) -> Sequence[str]:
        return self._actuator_joints[actuator]

    def dofs(self, joint: str) -> Sequence[str]:
        return self._joint_dofs.get(joint, [])

    def joint_of(self, dof: str) -> str:
        return self._dof_joint[dof]

    def moment_arm(self, actuator: str, dof: str) -> float:
        return float(self._moment_arms[self._actuator_index[actuator], self._dof_index[dof]])

    # -------------------------------------------------------------------------
    # Simulation
    # -------------------------------------------------------------------------

    @property
    def actuator_inputs(self) -> np.ndarray:
        return self._inputs.copy()

    def reset(self) -> None:
        """Reset to the initial state and clear the sensor history."""
        import mujoco

        mujoco.mj_resetData(self._mj_model, self._mj_data)
        mujoco.mj_forward(self._mj_model, self._mj_data)
        self._sensors.clear()
        self._inputs[:] = 0.0

    def _record_sensors(self) -> None:
        d = self._mj_data
        force = np.where(self._is_muscle, -d.actuator_force, d.actuator_force)
        actuator_values = np.stack([d.actuator_length, d.actuator_velocity, force], axis=1).ravel()
        dof_values = np.stack([d.qpos[self._qpos_adr], d.qvel[self._qvel_adr]], axis=1).ravel()
        self._sensors.add(np.concatenate([actuator_values, dof_values]))

    def _apply_controls(self) -> None:
        m = self._mj_model
        ctrl = self._inputs.copy()
        limited = m.actuator_ctrllimited.astype(bool)
        ctrl[limited] = np.clip(ctrl[limited], m.actuator_ctrlrange[limited, 0], m.actuator_ctrlrange[limited, 1])
        self._mj_data.ctrl[:] = ctrl

    def step(self, controller: Controller) -> None:
        """Record sensors, let ``controller`` set the inputs, and advance one timestep."""
        import mujoco

        self._record_sensors()
        self._inputs[:] = 0.0
        controller.update_controls(self, self.get_time())
        self._apply_controls()
        mujoco.mj_step(self._mj_model, self._mj_data)

    def simulate(self, controller: Controller, duration: float, measure: Optional[Measure] = None) -> Optional[float]:
        """
        Run ``controller`` for ``duration`` seconds of simulated time.

        The run ends early when the controller or the measure requests
        termination. The controller is finalized afterwards.

        Returns:
            The measure's result, or None without a measure.
        """
        try:
            while self.get_time() < duration and not controller.termination_request:
                self.step(controller)
                if measure is not None:
                    measure.update(self, self.get_time())
                    if measure.termination_request:
                        break
        finally:
            controller.finalize()
        return measure.result(self) if measure is not None else None
