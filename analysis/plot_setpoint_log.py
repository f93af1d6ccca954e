import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

# --------------------------------------------------
# Paths
# --------------------------------------------------

REPO_ROOT = Path(__file__).resolve().parents[1]
OUTPUT_DIR = REPO_ROOT / "analysis" / "outputs"


def load_setpoint_log(csv_path: Path) -> pd.DataFrame:
    df = pd.read_csv(csv_path)
    df["speed_cmd_m_s"] = np.sqrt(df["cmd_vx_m_s"] ** 2 + df["cmd_vy_m_s"] ** 2 + df["cmd_vz_m_s"] ** 2)
    return df


def plot_setpoint_log(csv_path: Path, out_png: Path) -> Path:
    """
    Three stacked panels against time:
    position vs planner target, commanded velocity, commanded yaw.
    TRACK periods are shaded.
    """
    df = load_setpoint_log(csv_path)
    t = df["t"].values
    track = (df["mode"] == "TRACK").values

    fig, axes = plt.subplots(3, 1, figsize=(10, 9), sharex=True)

    for axis, color in zip(("x", "y", "z"), ("tab:blue", "tab:orange", "tab:green")):
        axes[0].plot(t, df[f"pos_{axis}_m"], color=color, linewidth=2, label=f"{axis}")
        if f"traj_{axis}_m" in df and df[f"traj_{axis}_m"].notna().any():
            axes[0].plot(t, df[f"traj_{axis}_m"], "--", color=color, linewidth=1, label=f"{axis} ref")
        axes[1].plot(t, df[f"cmd_v{axis}_m_s"], color=color, linewidth=1.5, label=f"v{axis}")

    axes[1].plot(t, df["speed_cmd_m_s"], color="black", linewidth=1, alpha=0.6, label="|v|")
    axes[2].plot(t, df["yaw_rad"], linewidth=2, label="yaw")
    axes[2].plot(t, df["cmd_yaw_rad"], "--", linewidth=1.5, label="yaw cmd")

    for ax in axes:
        if track.any():
            ax.fill_between(t, 0, 1, where=track, transform=ax.get_xaxis_transform(),
                            color="grey", alpha=0.12, label="_track")
        ax.grid(True)
        ax.legend(loc="upper right", fontsize=8)

    axes[0].set_ylabel("Position [m]")
    axes[1].set_ylabel("Velocity cmd [m/s]")
    axes[2].set_ylabel("Yaw [rad]")
    axes[2].set_xlabel("Time [s]")
    axes[0].set_title("Velocity bridge setpoint log (shaded = TRACK)")

    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_png, dpi=200, bbox_inches="tight")
    plt.close(fig)
    return out_png


if __name__ == "__main__":
    if len(sys.argv) < 2:
        sys.exit("usage: python analysis/plot_setpoint_log.py logs/<setpoint_log>.csv")

    csv_path = Path(sys.argv[1])
    out = plot_setpoint_log(csv_path, OUTPUT_DIR / f"{csv_path.stem}.png")
    print(f"Saved plot → {out}")
