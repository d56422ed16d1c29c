"""
NBR 6118 Crane-Runway Beam Demonstration
========================================

This script runs the bundled two-span crane-runway beam through:
1. Material catalog
2. Load combinations and critical sections
3. Section cards (flexure, shear, fatigue)
4. Serviceability (crack width, deflection per span)
"""

import logging

from nbrbeam import configure_logging
from nbrbeam.core import DynamicCoefficients, LoadCaseStore, PinnedSection
from nbrbeam.design import (
    BeamDesignInput,
    MaterialLoader,
    ReinforcementLayout,
    run_beam_verification,
    run_serviceability,
    summary_dataframe,
)


def demo_material_catalog():
    """Print the available concrete and steel grades."""
    print("\n" + "="*70)
    print("MATERIAL CATALOG")
    print("="*70)

    print("\nConcrete Grades:")
    for grade in MaterialLoader.list_concrete_grades():
        c = MaterialLoader.get_concrete(grade)
        print(f"  {grade:4} → fck = {c.fck:2.0f} MPa, fcd = {c.fcd:5.2f} MPa, Ecs = {c.Ecs/1000:5.1f} GPa")

    print("\nSteel Grades:")
    for grade in MaterialLoader.list_steel_grades():
        s = MaterialLoader.get_steel(grade)
        print(f"  {grade:6} → fyk = {s.fyk:.0f} MPa, fyd = {s.fyd:5.1f} MPa")


def demo_combinations(store, dynamic):
    """Combination formulas and critical sections."""
    print("\n" + "="*70)
    print("LOAD COMBINATIONS")
    print("="*70)

    combinator = store.combinator(dynamic=dynamic)
    for case in store.available_load_cases()[3:]:
        print(f"  {combinator.formula(case['id'])}")

    print("\n--- CRITICAL SECTIONS ---")
    for s in combinator.find_critical_sections([PinnedSection(x=9.0)]):
        print(f"  {s.label:28} x = {s.x:5.2f} m ({s.side.value:10}) "
              f"Md = {s.design_moment:7.1f} kN·m  Vd = {s.design_shear:6.1f} kN")


def demo_section_cards(store, inputs, dynamic):
    """Verification of every critical section."""
    print("\n" + "="*70)
    print("SECTION CARDS")
    print("="*70)

    cards = run_beam_verification(store, inputs, pinned=[PinnedSection(x=9.0)], dynamic=dynamic)
    print(summary_dataframe(cards).to_string(index=False, float_format=lambda v: f"{v:.1f}"))


def demo_serviceability(store, inputs):
    """Crack width and deflection under service combinations."""
    print("\n" + "="*70)
    print("SERVICEABILITY")
    print("="*70)

    result = run_serviceability(store, inputs)
    crack = result['cracking']
    print(f"\nCrack width at x = {crack['x']:.2f} m: {crack['message']}")
    for span in result['deflection']['spans']:
        print(f"  Span {span['span']}: {span['message']} (x = {span['max_x']:.2f} m)")


if __name__ == "__main__":
    configure_logging(logging.WARNING)

    print("\n" + "="*70)
    print("NBR 6118:2023 CRANE-RUNWAY BEAM DEMO")
    print("="*70)

    store = LoadCaseStore.sample()
    dynamic = DynamicCoefficients(civ=1.25)
    layout = ReinforcementLayout(n_bars=6, bar_phi=20, stirrup_phi=10, stirrup_spacing=10)
    inputs = BeamDesignInput(bw=40, h=80, layout=layout)

    demo_material_catalog()
    demo_combinations(store, dynamic)
    demo_section_cards(store, inputs, dynamic)
    demo_serviceability(store, inputs)

    print("\n" + "="*70)
    print("DEMO COMPLETE")
    print("="*70)
    print()
