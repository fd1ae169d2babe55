"""Solve an EPKE problem described by an XML input file."""

import argparse

import lxml.etree as ET

import epke
from epke.exceptions import ConfigurationError


def _load(path):
    """Read parameters and an optional precomputed history from `path`"""
    root = ET.parse(str(path)).getroot()
    if root.tag == 'epke_input':
        input_elem, output_elem = root, None
    else:
        input_elem = root.find('epke_input')
        if input_elem is None:
            raise ConfigurationError(
                f'{path} does not contain an <epke_input> element')
        output_elem = root.find('epke_output')

    params = epke.Parameters.from_xml_element(input_elem)
    precomputed = None
    if output_elem is not None:
        precomputed = epke.SolverOutput.from_xml_element(output_elem)
    outpath = input_elem.get('outpath', root.get('outpath'))
    return params, precomputed, outpath


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Solve the exponential point-kinetics equations.')
    parser.add_argument('input', metavar='INPUT',
                        help='XML file with an <epke_input> or <parareal> root.')
    parser.add_argument('-o', '--output', metavar='OUTPUT',
                        help='Output XML file. Defaults to the outpath '
                        'attribute of the input or epke_output.xml.')
    parser.add_argument('--acceptance-test', action='store_true',
                        help='Check each exponential transformation against a '
                        'linear extrapolation.')
    parser.add_argument('--hdf5', metavar='PATH',
                        help='Also write the solution to an HDF5 file.')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Print a progress line for every time step.')
    args = parser.parse_args(argv)

    params, precomputed, outpath = _load(args.input)
    solver = epke.Solver(params, precomputed,
                         acceptance_test=args.acceptance_test or None)
    solver.solve(args.verbose or None)

    path = args.output or outpath or 'epke_output.xml'
    solver.export_to_xml(path)
    if args.hdf5:
        solver.export_to_hdf5(args.hdf5)
    if args.verbose or epke.config['verbose']:
        print(f'[epke] Wrote {path}')


if __name__ == '__main__':
    main()
