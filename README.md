# simos

`simos` models two parts of a small teaching operating system:

- a **CPU** that fetches, decodes and executes a simple instruction set,
  translating logical addresses through a paged **MMU** backed by a
  **TLB** (FIFO or LRU replacement), and evicting the running process
  when it exits, makes a system call, fails, or is interrupted by the
  kernel;
- **I/O interfaces** (generic, stdin, stdout and a block-based file
  system called DialFS) that carry out the operations the CPU hands
  over as system calls.

It uses only the standard library and supports Python 3.10 and later.

## Modules

| Module               | What it holds                                                        |
|----------------------|----------------------------------------------------------------------|
| `simos.config`       | Reading and writing `KEY=VALUE` configuration files                  |
| `simos.registers`    | CPU registers, their widths, and the execution context of a process  |
| `simos.tlb`          | The translation lookaside buffer and its replacement algorithms      |
| `simos.mmu`          | Page arithmetic, address translation and the `MemoryPort` protocol   |
| `simos.instructions` | Op codes, eviction reasons, syscalls and instruction parsing         |
| `simos.operations`   | The behaviour of every CPU instruction                               |
| `simos.cpu`          | The instruction cycle, kernel interrupts and CPU configuration       |
| `simos.dialfs`       | DialFS: files laid out contiguously over blocks, with compaction     |
| `simos.interface`    | I/O interface types, their configuration and operation dispatch      |

## Configuration files

`simos.config.load_config` reads a file of `KEY=VALUE` lines into a
dict, skipping blank lines and lines starting with `#`; a line without
`=` raises `ValueError`. `save_config` writes a mapping back in the same
form. `get_str` and `get_int` fetch a key, raising `KeyError` when it is
missing and `ValueError` when an integer is expected but not found.

## Registers

Registers are decoded by name. `AX`, `BX`, `CX` and `DX` are one byte
wide; `PC`, `EAX` to `EDX`, `RAX` to `RDX`, `SI` and `DI` are four bytes
wide. Values written to a register wrap to its width, and
`ExecContext.to_bytes` / `load_bytes` give its little-endian memory image.

```python
from simos.registers import ExecContext, decode_register

context = ExecContext()
ax = decode_register("AX")
context.set(ax, 300)        # AX is 8 bits wide
context.get(ax)             # 44
ax.size()                   # 1
```

An unknown register name raises `ValueError`.

## TLB and MMU

```python
from simos.tlb import Tlb, find_tlb_algorithm
from simos.mmu import Mmu, pages_required

tlb = Tlb(4, find_tlb_algorithm("LRU"))

# Any callable mapping (pid, page_number) to a frame number will do
# as the page table lookup.
frames = {(1, 0): 7, (1, 1): 3}
mmu = Mmu(32, tlb, lambda pid, page: frames[(pid, page)])

mmu.translate(1, 30, 4)     # [254, 96]: the range spans pages 0 and 1
pages_required(30, 4, 32)   # 2
```

`Mmu.translate` returns one physical address per page covered; only the
first carries the offset within its page. The TLB is consulted first and
filled on a miss.

The TLB holds at most the configured number of entries; when full, it
replaces entries in turn (FIFO) or the least recently used one (LRU).
A capacity of zero disables it. Entries of a process can be dropped
with `Tlb.remove_process`, or from a given page on with
`Tlb.remove_on_resize`. An unknown algorithm name raises `ValueError`.

## Instructions

The CPU understands `SET`, `MOV_IN`, `MOV_OUT`, `SUM`, `SUB`, `JNZ`,
`RESIZE`, `COPY_STRING`, `WAIT`, `SIGNAL`, `IO_GEN_SLEEP`,
`IO_STDIN_READ`, `IO_STDOUT_WRITE`, `IO_FS_CREATE`, `IO_FS_DELETE`,
`IO_FS_TRUNCATE`, `IO_FS_WRITE`, `IO_FS_READ` and `EXIT`.

In `simos.instructions`, `decode_instruction` maps a name to its
`OpCode`, `split_instruction` splits a line into its words (at most six),
and `parse_unsigned` reads a decimal operand. A malformed instruction
raises `InstructionError`, whose `reason` is the `EvictionReason` the
process leaves with.

`simos.operations.execute` runs one instruction against a `CpuState`
(execution context, memory and MMU). Instructions that need the kernel
(`WAIT`, `SIGNAL`, the `IO_*` ones and `EXIT`) return a `Syscall` with
their arguments; the others return `None`.

## The CPU

`simos.cpu.Cpu` needs a memory object with the methods described by
`simos.mmu.MemoryPort`: `page_size`, `fetch_instruction`, `frame`,
`read`, `write`, `copy` and `resize`. Failures from memory are reported
by raising `MemoryAccessError`.

```python
from simos.cpu import Cpu
from simos.instructions import EvictionReason
from simos.registers import ExecContext, Register


class Memory:
    """Identity-mapped memory holding one program."""

    def __init__(self, program):
        self.program = program
        self.data = bytearray(256)

    def page_size(self):
        return 16

    def fetch_instruction(self, pid, pc):
        return self.program[pc]

    def frame(self, pid, page_number):
        return page_number

    def read(self, pid, addresses, size):
        start = addresses[0]
        return bytes(self.data[start:start + size])

    def write(self, pid, addresses, data):
        start = addresses[0]
        self.data[start:start + len(data)] = data

    def copy(self, pid, source, destination, size):
        self.write(pid, destination, self.read(pid, source, size))

    def resize(self, pid, size):
        pass


cpu = Cpu(Memory(["SET AX 5", "SET BX 3", "SUM AX BX", "EXIT"]), 4, "FIFO")
eviction = cpu.run(ExecContext(pid=1))
eviction.reason is EvictionReason.EXIT     # True
eviction.context.get(Register.AX)          # 8
```

`Cpu.run` returns an `Eviction` holding the context, the reason and any
syscall. After each instruction it checks, in this order: `EXIT`, a
pending kill interrupt, a syscall, a pending quantum interrupt.
`Cpu.interrupt(kind, pid)` flags a `KernelInterrupt` for the running
process and returns `False` when that process is not running; a kill
overrides a quantum.

`CpuConfig.from_file` reads `IP_MEMORIA`, `PUERTO_MEMORIA`,
`PUERTO_ESCUCHA_DISPATCH`, `PUERTO_ESCUCHA_INTERRUPT`,
`CANTIDAD_ENTRADAS_TLB` and `ALGORITMO_TLB` (`FIFO` or `LRU`).

## DialFS

DialFS keeps its data in `bloques.dat` and its free-block bitmap in
`bitmap.dat` under a base directory, which must already exist. Each user
file has a metadata file of the same name there, recording
`BLOQUE_INICIAL` and `TAMAÑO_ARCHIVO`; when the file system is opened,
metadata files ending in `.txt` are loaded. Files occupy contiguous
blocks; when a file cannot grow in place but enough blocks are free in
total, the file system compacts itself.

```python
from simos.dialfs import DialFs

with DialFs("/tmp/dialfs", 16, 64, 0) as fs:
    fs.create("notes.txt")
    fs.truncate("notes.txt", 40)
    fs.write("notes.txt", 0, b"hello")
    fs.read("notes.txt", 0, 5)      # b"hello"
    fs.delete("notes.txt")
```

File system failures, such as running out of blocks, naming a file that
does not exist, creating one that does, or reading or writing past a
file's blocks, raise `FsError`.

## I/O interfaces

`simos.interface.IoInterface` executes the operations of one interface
type — `GENERICA`, `STDIN`, `STDOUT` or `DIALFS` — as chosen by
`find_io_type` or by `IoConfig.from_file`. `IoInterface.execute(pid,
opcode, arguments)` takes the syscall's arguments without the interface
name. Console operations return the bytes they moved; the `STDIN`
interface reads lines from its `stdin` stream until one is long enough.
Asking an interface for an operation of another type, or an operation
that fails, raises `IoError`.

`IoConfig.from_file` reads `TIPO_INTERFAZ`, `IP_KERNEL` and
`PUERTO_KERNEL`, plus `TIEMPO_UNIDAD_TRABAJO`, `IP_MEMORIA`,
`PUERTO_MEMORIA`, `PATH_BASE_DIALFS`, `BLOCK_SIZE`, `BLOCK_COUNT` and
`RETRASO_COMPACTACION` as the interface type needs them.

## What this package does not do

There is no network layer: the package opens no sockets, runs no
dispatch or interrupt server and connects to no kernel or memory
process. The addresses and ports in the configuration classes are read
but not used. Memory is whatever object you pass in, following the
`MemoryPort` methods. There is no command-line program either; the
CPU and the interfaces are driven from Python.

## Running the tests

The test suite uses pytest, available through the `test` extra.