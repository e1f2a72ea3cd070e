"""Native DDC/CI access on macOS through CoreGraphics and IOKit (ctypes).

No helper process is involved: displays are enumerated with CoreGraphics,
matched to their IOKit framebuffer by vendor/product/serial, and VCP packets
are sent over each of the framebuffer's I2C buses until one answers.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import enum
import json
import logging
import sys
import time
from collections.abc import Callable, Generator, Iterator
from contextlib import closing, contextmanager
from typing import Any

from monitorswitch.core.errors import NativeTransportError, NativeUnavailableError, ProtocolError
from monitorswitch.core.model import VCPReading
from monitorswitch.transports.ddc_packets import (
    DDC_ADDRESS,
    GET_VCP_REPLY_LENGTH,
    MIN_REPLY_DELAY_NS,
    build_get_vcp,
    build_set_vcp,
    parse_get_vcp_reply,
)

LOGGER = logging.getLogger(__name__)

MAX_DISPLAYS = 16

_K_IO_MASTER_PORT_DEFAULT = 0
_K_IO_RETURN_SUCCESS = 0
_K_IO_DISPLAY_ONLY_PREFERRED_NAME = 0x00000200
_K_IO_I2C_SIMPLE_TRANSACTION_TYPE = 1
_K_CF_NUMBER_SINT32_TYPE = 3
_K_CF_STRING_ENCODING_UTF8 = 0x08000100
_K_IO_SERVICE_PLANE = b"IOService"


class NativeStatus(enum.IntEnum):
    OK = 0
    NO_SERVICE = -1
    ALL_BUSES_FAILED = -2


class IOI2CRequest(ctypes.Structure):
    # LP64 layout of IOI2CRequest from <IOKit/i2c/IOI2CInterface.h>.
    _fields_ = [
        ("sendTransactionType", ctypes.c_uint32),
        ("replyTransactionType", ctypes.c_uint32),
        ("sendAddress", ctypes.c_uint32),
        ("replyAddress", ctypes.c_uint32),
        ("sendSubAddress", ctypes.c_uint8),
        ("replySubAddress", ctypes.c_uint8),
        ("_reservedA", ctypes.c_uint8 * 2),
        ("minReplyDelay", ctypes.c_uint64),
        ("result", ctypes.c_int32),
        ("commFlags", ctypes.c_uint32),
        ("_padA", ctypes.c_uint32),
        ("sendBytes", ctypes.c_uint32),
        ("_reservedB", ctypes.c_uint32 * 2),
        ("_padB", ctypes.c_uint32),
        ("replyBytes", ctypes.c_uint32),
        ("completion", ctypes.c_void_p),
        ("sendBuffer", ctypes.c_void_p),
        ("replyBuffer", ctypes.c_void_p),
        ("_reservedC", ctypes.c_uint32 * 10),
    ]


def _load(name: str) -> ctypes.CDLL:
    path = ctypes.util.find_library(name)
    if path is None:
        raise NativeUnavailableError(f"{name} framework not found")
    try:
        return ctypes.CDLL(path)
    except OSError as exc:
        raise NativeUnavailableError(f"could not load {name}: {exc}") from exc


def _declare(lib: ctypes.CDLL, name: str, restype: Any, *argtypes: Any) -> None:
    func = getattr(lib, name)
    func.restype = restype
    func.argtypes = list(argtypes)


class _Frameworks:
    def __init__(self) -> None:
        u32 = ctypes.c_uint32
        ptr = ctypes.c_void_p

        self.cg = _load("CoreGraphics")
        _declare(self.cg, "CGGetOnlineDisplayList", ctypes.c_int32, u32, ctypes.POINTER(u32), ctypes.POINTER(u32))
        for name in ("CGDisplayIsBuiltin", "CGDisplayVendorNumber", "CGDisplayModelNumber", "CGDisplaySerialNumber"):
            _declare(self.cg, name, u32, u32)

        self.cf = _load("CoreFoundation")
        _declare(self.cf, "CFStringCreateWithCString", ptr, ptr, ctypes.c_char_p, u32)
        _declare(self.cf, "CFStringGetCString", ctypes.c_bool, ptr, ctypes.c_char_p, ctypes.c_long, u32)
        _declare(self.cf, "CFDictionaryGetValue", ptr, ptr, ptr)
        _declare(self.cf, "CFDictionaryGetCount", ctypes.c_long, ptr)
        _declare(self.cf, "CFDictionaryGetKeysAndValues", None, ptr, ctypes.POINTER(ptr), ctypes.POINTER(ptr))
        _declare(self.cf, "CFNumberGetValue", ctypes.c_bool, ptr, ctypes.c_long, ptr)
        _declare(self.cf, "CFRelease", None, ptr)

        self.iokit = _load("IOKit")
        _declare(self.iokit, "IOServiceMatching", ptr, ctypes.c_char_p)
        _declare(self.iokit, "IOServiceGetMatchingServices", ctypes.c_int, u32, ptr, ctypes.POINTER(u32))
        _declare(self.iokit, "IOIteratorNext", u32, u32)
        _declare(self.iokit, "IOObjectRelease", ctypes.c_int, u32)
        _declare(self.iokit, "IODisplayCreateInfoDictionary", ptr, u32, u32)
        _declare(self.iokit, "IORegistryEntryGetParentEntry", ctypes.c_int, u32, ctypes.c_char_p, ctypes.POINTER(u32))
        _declare(self.iokit, "IOFBGetI2CInterfaceCount", ctypes.c_int, u32, ctypes.POINTER(u32))
        _declare(self.iokit, "IOFBCopyI2CInterfaceForBus", ctypes.c_int, u32, u32, ctypes.POINTER(u32))
        _declare(self.iokit, "IOI2CInterfaceOpen", ctypes.c_int, u32, u32, ctypes.POINTER(ptr))
        _declare(self.iokit, "IOI2CInterfaceClose", ctypes.c_int, ptr, u32)
        _declare(self.iokit, "IOI2CSendRequest", ctypes.c_int, ptr, u32, ctypes.POINTER(IOI2CRequest))


class NativeMacDDC:
    """ctypes binding to the macOS display and I2C subsystems."""

    def __init__(self) -> None:
        if sys.platform != "darwin":
            raise NativeUnavailableError("native DDC access is only available on macOS")
        self._fw = _Frameworks()

    # -- scoped ownership -------------------------------------------------

    @contextmanager
    def _cf_owned(self, ref: int | None) -> Iterator[int | None]:
        try:
            yield ref
        finally:
            if ref:
                self._fw.cf.CFRelease(ref)

    @contextmanager
    def _io_owned(self, obj: int) -> Iterator[int]:
        try:
            yield obj
        finally:
            if obj:
                self._fw.iokit.IOObjectRelease(obj)

    @contextmanager
    def _cfstr(self, text: str) -> Iterator[int | None]:
        ref = self._fw.cf.CFStringCreateWithCString(None, text.encode("utf-8"), _K_CF_STRING_ENCODING_UTF8)
        with self._cf_owned(ref) as owned:
            yield owned

    @contextmanager
    def _i2c_connection(self, interface: int) -> Iterator[int | None]:
        connect = ctypes.c_void_p()
        ret = self._fw.iokit.IOI2CInterfaceOpen(interface, 0, ctypes.byref(connect))
        if ret != _K_IO_RETURN_SUCCESS:
            yield None
            return
        try:
            yield connect.value
        finally:
            self._fw.iokit.IOI2CInterfaceClose(connect, 0)

    # -- CoreFoundation helpers -------------------------------------------

    def _dict_int(self, info: int, key: str) -> int | None:
        with self._cfstr(key) as cf_key:
            ref = self._fw.cf.CFDictionaryGetValue(info, cf_key)
        if not ref:
            return None
        value = ctypes.c_int32()
        if not self._fw.cf.CFNumberGetValue(ref, _K_CF_NUMBER_SINT32_TYPE, ctypes.byref(value)):
            return None
        return value.value

    def _cf_string(self, ref: int) -> str | None:
        buffer = ctypes.create_string_buffer(256)
        if not self._fw.cf.CFStringGetCString(ref, buffer, len(buffer), _K_CF_STRING_ENCODING_UTF8):
            return None
        return buffer.value.decode("utf-8", errors="replace")

    def _product_name(self, info: int) -> str | None:
        with self._cfstr("DisplayProductName") as cf_key:
            names = self._fw.cf.CFDictionaryGetValue(info, cf_key)
        if not names:
            return None
        count = self._fw.cf.CFDictionaryGetCount(names)
        if count <= 0:
            return None
        keys = (ctypes.c_void_p * count)()
        values = (ctypes.c_void_p * count)()
        self._fw.cf.CFDictionaryGetKeysAndValues(names, keys, values)
        return self._cf_string(values[0]) if values[0] else None

    # -- display registry -------------------------------------------------

    def _online_displays(self) -> list[int]:
        displays = (ctypes.c_uint32 * MAX_DISPLAYS)()
        count = ctypes.c_uint32()
        if self._fw.cg.CGGetOnlineDisplayList(MAX_DISPLAYS, displays, ctypes.byref(count)) != 0:
            LOGGER.warning("CGGetOnlineDisplayList failed; reporting no displays")
            return []
        return [displays[i] for i in range(count.value)]

    def _display_connect_service(self, display_id: int) -> int:
        """Return the IODisplayConnect service matching `display_id`, or 0."""
        vendor = self._fw.cg.CGDisplayVendorNumber(display_id)
        model = self._fw.cg.CGDisplayModelNumber(display_id)
        serial = self._fw.cg.CGDisplaySerialNumber(display_id)

        matching = self._fw.iokit.IOServiceMatching(b"IODisplayConnect")
        iterator = ctypes.c_uint32()
        # IOServiceGetMatchingServices consumes the matching dictionary.
        if self._fw.iokit.IOServiceGetMatchingServices(
            _K_IO_MASTER_PORT_DEFAULT, matching, ctypes.byref(iterator)
        ) != _K_IO_RETURN_SUCCESS:
            return 0

        with self._io_owned(iterator.value):
            while True:
                service = self._fw.iokit.IOIteratorNext(iterator.value)
                if not service:
                    return 0
                info = self._fw.iokit.IODisplayCreateInfoDictionary(service, _K_IO_DISPLAY_ONLY_PREFERRED_NAME)
                with self._cf_owned(info):
                    if info:
                        info_vendor = self._dict_int(info, "DisplayVendorID")
                        info_product = self._dict_int(info, "DisplayProductID")
                        info_serial = self._dict_int(info, "DisplaySerialNumber") or 0
                        if (
                            info_vendor is not None
                            and info_product is not None
                            and info_vendor & 0xFFFFFFFF == vendor
                            and info_product & 0xFFFFFFFF == model
                            and info_serial & 0xFFFFFFFF == serial
                        ):
                            return service
                self._fw.iokit.IOObjectRelease(service)

    def _framebuffer_service(self, display_id: int) -> int:
        connect = self._display_connect_service(display_id)
        if not connect:
            return 0
        with self._io_owned(connect):
            parent = ctypes.c_uint32()
            if self._fw.iokit.IORegistryEntryGetParentEntry(
                connect, _K_IO_SERVICE_PLANE, ctypes.byref(parent)
            ) != _K_IO_RETURN_SUCCESS:
                return 0
            return parent.value

    # -- public operations ------------------------------------------------

    def list_monitors(self) -> list[dict[str, Any]]:
        """Return non-built-in displays as id/name/vendor_id/model_id/serial dicts."""
        monitors: list[dict[str, Any]] = []
        for display_id in self._online_displays():
            if self._fw.cg.CGDisplayIsBuiltin(display_id):
                continue
            name: str | None = None
            service = self._display_connect_service(display_id)
            if service:
                with self._io_owned(service):
                    info = self._fw.iokit.IODisplayCreateInfoDictionary(
                        service, _K_IO_DISPLAY_ONLY_PREFERRED_NAME
                    )
                    with self._cf_owned(info):
                        if info:
                            name = self._product_name(info)
            monitors.append(
                {
                    "id": display_id,
                    "name": name or f"Display {display_id}",
                    "vendor_id": self._fw.cg.CGDisplayVendorNumber(display_id),
                    "model_id": self._fw.cg.CGDisplayModelNumber(display_id),
                    "serial": self._fw.cg.CGDisplaySerialNumber(display_id),
                }
            )
        return monitors

    def monitors_json(self) -> str:
        return json.dumps(self.list_monitors(), indent=2)

    def _send_on_each_bus(
        self,
        display_id: int,
        request_factory: Callable[[], IOI2CRequest],
    ) -> Generator[IOI2CRequest, None, None]:
        """Yield each request that an I2C bus of the display accepted."""
        framebuffer = self._framebuffer_service(display_id)
        if not framebuffer:
            raise NativeTransportError(
                f"no display service found for display {display_id}",
                status=NativeStatus.NO_SERVICE,
            )
        with self._io_owned(framebuffer):
            bus_count = ctypes.c_uint32()
            if self._fw.iokit.IOFBGetI2CInterfaceCount(framebuffer, ctypes.byref(bus_count)) != _K_IO_RETURN_SUCCESS:
                return
            for bus in range(bus_count.value):
                interface = ctypes.c_uint32()
                if self._fw.iokit.IOFBCopyI2CInterfaceForBus(
                    framebuffer, bus, ctypes.byref(interface)
                ) != _K_IO_RETURN_SUCCESS:
                    continue
                with self._io_owned(interface.value):
                    with self._i2c_connection(interface.value) as connect:
                        if connect is None:
                            continue
                        request = request_factory()
                        ret = self._fw.iokit.IOI2CSendRequest(connect, 0, ctypes.byref(request))
                if ret == _K_IO_RETURN_SUCCESS and request.result == _K_IO_RETURN_SUCCESS:
                    yield request
                else:
                    LOGGER.debug("I2C bus %d rejected request for display %d", bus, display_id)

    def set_vcp(self, display_id: int, code: int, value: int) -> None:
        packet = build_set_vcp(code, value)
        send_buffer = ctypes.create_string_buffer(packet, len(packet))

        def make_request() -> IOI2CRequest:
            request = IOI2CRequest()
            request.sendAddress = DDC_ADDRESS << 1
            request.sendTransactionType = _K_IO_I2C_SIMPLE_TRANSACTION_TYPE
            request.sendBuffer = ctypes.addressof(send_buffer)
            request.sendBytes = len(packet)
            request.minReplyDelay = MIN_REPLY_DELAY_NS
            return request

        with closing(self._send_on_each_bus(display_id, make_request)) as answers:
            for _ in answers:
                # Displays need the minimum reply delay before they accept a read.
                time.sleep(MIN_REPLY_DELAY_NS / 1e9)
                return
        raise NativeTransportError(
            f"every I2C bus rejected set VCP 0x{code:02X} for display {display_id}",
            status=NativeStatus.ALL_BUSES_FAILED,
        )

    def get_vcp(self, display_id: int, code: int) -> VCPReading:
        packet = build_get_vcp(code)
        send_buffer = ctypes.create_string_buffer(packet, len(packet))
        reply_buffer = ctypes.create_string_buffer(GET_VCP_REPLY_LENGTH)

        def make_request() -> IOI2CRequest:
            ctypes.memset(reply_buffer, 0, GET_VCP_REPLY_LENGTH)
            request = IOI2CRequest()
            request.sendAddress = DDC_ADDRESS << 1
            request.sendTransactionType = _K_IO_I2C_SIMPLE_TRANSACTION_TYPE
            request.sendBuffer = ctypes.addressof(send_buffer)
            request.sendBytes = len(packet)
            request.replyAddress = DDC_ADDRESS << 1
            request.replyTransactionType = _K_IO_I2C_SIMPLE_TRANSACTION_TYPE
            request.replyBuffer = ctypes.addressof(reply_buffer)
            request.replyBytes = GET_VCP_REPLY_LENGTH
            request.minReplyDelay = MIN_REPLY_DELAY_NS
            return request

        integrity_error: ProtocolError | None = None
        with closing(self._send_on_each_bus(display_id, make_request)) as answers:
            for request in answers:
                reply = reply_buffer.raw[: request.replyBytes]
                try:
                    return parse_get_vcp_reply(reply, code)
                except ProtocolError as exc:
                    integrity_error = exc

        if integrity_error is not None:
            raise integrity_error
        raise NativeTransportError(
            f"every I2C bus rejected get VCP 0x{code:02X} for display {display_id}",
            status=NativeStatus.ALL_BUSES_FAILED,
        )
